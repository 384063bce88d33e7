"""
Configuration management for tracelog-watchman.

Two layers:
- Runtime settings (log file, queueing, polling) loaded with pydantic-settings
  from environment variables and .env files.
- The store document (conf.json) describing where file-creation records go.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import quote_plus

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.errors import StartupFatal

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Store configuration document
    store_config_path: Path = Path("conf.json")

    # Logging
    log_file: Path = Path("tracelog.log")
    log_level: str = "INFO"

    # Event loop
    poll_interval: float = 1.0  # seconds
    follow_new_directories: bool = False

    # Writer queue (0 keeps inserts synchronous)
    sink_queue_size: int = 0
    sink_queue_policy: Literal["block", "drop_newest", "drop_oldest"] = "block"

    # MongoDB client
    server_selection_timeout_ms: int = 5000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        """Accept loguru's built-in level names, case-insensitively."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class StoreConfig(BaseModel):
    """Connection and routing information for the metadata store.

    Keys missing from the document keep the empty-string zero value and
    unknown keys are ignored. Nothing is validated here; a bad host or port
    only shows up when the connection is attempted.
    """

    db_type: str = Field("", alias="DbType")
    host: str = Field("", alias="Host")
    port: str = Field("", alias="Port")
    db_user: str = Field("", alias="DbUser")
    db_pwd: str = Field("", alias="DbPwd")
    db_name: str = Field("", alias="DbName")
    file_coll: str = Field("", alias="FileColl")
    # Reserved for directory-tree metadata, not written yet
    tree_coll: str = Field("", alias="TreeColl")

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def mongo_uri(self) -> str:
        """Compose the connection address, with credentials when a user is set."""
        credentials = ""
        if self.db_user:
            credentials = f"{quote_plus(self.db_user)}:{quote_plus(self.db_pwd)}@"
        return f"{self.db_type}://{credentials}{self.host}:{self.port}"

    def redacted_uri(self) -> str:
        """Connection address safe for logging."""
        credentials = f"{self.db_user}:***@" if self.db_user else ""
        return f"{self.db_type}://{credentials}{self.host}:{self.port}"


def load_store_config(config_path: Path) -> StoreConfig:
    """
    Load the store configuration document.

    Args:
        config_path: Path to the JSON document

    Returns:
        Parsed StoreConfig

    Raises:
        StartupFatal: If the document cannot be read or parsed
    """
    try:
        raw = Path(config_path).read_text(encoding="utf-8")
    except OSError as e:
        raise StartupFatal(f"Cannot read store config {config_path}: {e}") from e

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise StartupFatal(f"Invalid JSON in store config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise StartupFatal(f"Store config {config_path} must be a JSON object")

    try:
        config = StoreConfig.model_validate(data)
    except ValidationError as e:
        raise StartupFatal(f"Cannot parse store config {config_path}: {e}") from e

    logger.debug(f"Loaded store config from {config_path}: {config.redacted_uri()}")
    return config


# Example store document
EXAMPLE_STORE_CONFIG = """{
    "DbType": "mongodb",
    "Host": "localhost",
    "Port": "27017",
    "DbUser": "admin",
    "DbPwd": "password",
    "DbName": "sopie",
    "FileColl": "files",
    "TreeColl": "trees"
}
"""


def write_example_config(config_path: Path, overwrite: bool = False) -> bool:
    """
    Write the example store document.

    Returns:
        True if written, False if a file already exists and overwrite is off
    """
    config_path = Path(config_path)
    if config_path.exists() and not overwrite:
        logger.warning(f"Store config already exists, not overwriting: {config_path}")
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(EXAMPLE_STORE_CONFIG, encoding="utf-8")
    logger.info(f"Wrote example store config to {config_path}")
    return True


def example_store_config() -> StoreConfig:
    """Parse the embedded example document."""
    return StoreConfig.model_validate(json.loads(EXAMPLE_STORE_CONFIG))
