# WiReD v1.0.0
"""
WiReD - Windows Registry Difference tools
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application Info
    APP_NAME: str = "WiReD"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Logging (diagnostics always go to stderr)
    LOG_LEVEL: str = "WARNING"
    LOG_FORMAT: str = "%(levelname)s: %(message)s"

    # Patch file input. Files must already be converted from UTF-16LE.
    INPUT_ENCODING: str = "utf-8"
    INPUT_ERRORS: str = "replace"  # codec error handler for undecodable bytes

    # Dataset output
    DATASET_SEPARATOR: str = "\t"
    DATASET_DEBUG: bool = False     # add baseline/delta file and diff node columns
    DATASET_HEADERS: bool = True
    DATASET_MODE: str = "A"         # A = append, O = overwrite
    DATASET_WORKERS: int = 1        # threads reading difference documents

    # Directory watching
    WATCH_DIRECTORY: Optional[str] = None
    WATCH_PATTERN: str = "*.xml"
    WATCH_SETTLE_SECONDS: float = 0.5  # wait for a new file to be fully written

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
