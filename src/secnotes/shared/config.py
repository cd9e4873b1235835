from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING
from os import PathLike, getenv
from pathlib import Path
from tomllib import load

from pydantic import BaseModel, field_validator

DEFAULT_CONFIG_PATH = Path("config.toml")

# Path of a specific config file applied when none is passed explicitly
CONFIG_ENV = "SECNOTES_CONFIG"


class General(BaseModel):
    title: str


class Database(BaseModel):
    path: str


class Logging(BaseModel):
    level: int

    @field_validator("level", mode="before")
    @classmethod
    def convert_log_level(cls, value):
        if isinstance(value, int):
            return value

        log_levels = {
            "DEBUG": DEBUG,
            "INFO": INFO,
            "WARNING": WARNING,
            "ERROR": ERROR,
            "CRITICAL": CRITICAL,
        }
        return log_levels.get(value.upper(), INFO)


class Paths(BaseModel):
    logs: str


class Codec(BaseModel):
    # Name of the environment variable holding the hex-encoded 256-bit key
    key_env: str = "SECNOTES_RECORD_KEY"


class RateLimit(BaseModel):
    timeout_period: int
    requests_per_second: int


class Network(BaseModel):
    host: str
    port: int
    reload: bool
    max_body_bytes: int = 65536

    rate_limit: RateLimit


class Config(BaseModel):
    general: General
    database: Database
    paths: Paths
    logging: Logging
    codec: Codec = Codec()
    network: Network


def load_config(
    shared_config_file: PathLike = DEFAULT_CONFIG_PATH,
    specific_config_file: PathLike | None = None,
) -> Config:
    """Load and merge configurations from TOML files.

    Without an explicit specific file, the one named by `SECNOTES_CONFIG`
    is merged in if that variable is set.
    """
    if specific_config_file is None:
        specific_config_file = getenv(CONFIG_ENV) or None

    with Path(shared_config_file).open("rb") as f:
        config_data = load(f)

    # Sections in the specific file replace whole sections of the shared one
    if specific_config_file:
        with Path(specific_config_file).open("rb") as f:
            config_data.update(load(f))

    return Config(**config_data)
