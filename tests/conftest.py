import os
import shutil
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

# Must be in place before the app builds its record store
TEST_KEY_HEX = "4f" * 32
os.environ.setdefault("SECNOTES_RECORD_KEY", TEST_KEY_HEX)

# The app opens its database and log directory at import; keep both out of the checkout
SESSION_DIR = Path(tempfile.mkdtemp(prefix="secnotes-tests-"))
SESSION_CONFIG = SESSION_DIR / "config.toml"
SESSION_CONFIG.write_text(
    f'[database]\npath = "sqlite:///{(SESSION_DIR / "secnotes.db").as_posix()}"\n\n'
    f'[paths]\nlogs = "{(SESSION_DIR / "logs").as_posix()}"\n'
)
os.environ["SECNOTES_CONFIG"] = str(SESSION_CONFIG)

from secnotes.core.codec import Codec  # noqa: E402
from secnotes.core.store import RecordStore  # noqa: E402
from secnotes.models import schema  # noqa: E402, F401 # tables must be registered


def pytest_unconfigure(config):
    shutil.rmtree(SESSION_DIR, ignore_errors=True)


@pytest.fixture
def codec():
    return Codec(bytes.fromhex(TEST_KEY_HEX))


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def store(engine, codec):
    return RecordStore(engine, codec)
