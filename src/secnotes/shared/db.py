from sqlalchemy import Engine
from sqlmodel import SQLModel, create_engine

from secnotes.models.schema import *  # noqa: F403 # SQLModel subclasses need to be in memory
from secnotes.shared import Logger, load_config

logger = Logger(__name__).get_logger()

config = load_config()


def init_engine(database_path: str) -> Engine:
    """Create an engine and make sure every table exists."""
    new_engine = create_engine(database_path)
    SQLModel.metadata.create_all(new_engine)
    logger.info("Database ready: %s", new_engine.url.render_as_string())
    return new_engine


engine: Engine = init_engine(config.database.path)
