"""
Validated run options for the diff and dataset commands.

Each field validator is the check for one command-line option. Any
validation failure is reported as InvalidConfiguration before work
starts.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.document import Action
from core.errors import InvalidConfiguration


class WriteMode(str, Enum):
    """How the dataset output file is opened."""
    APPEND = "A"
    OVERWRITE = "O"

    @property
    def file_mode(self) -> str:
        return "a" if self is WriteMode.APPEND else "w"


class DiffOptions(BaseModel):
    baseline: str
    delta: str
    app_name: str
    action: Action
    nsrl_id: Optional[str] = None
    output: Optional[str] = None
    encoding: str = "utf-8"

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, value):
        if isinstance(value, Action):
            return value
        return Action.parse(value)

    @field_validator("app_name")
    @classmethod
    def require_app_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("application name must not be empty")
        return value

    @field_validator("nsrl_id")
    @classmethod
    def nsrl_is_integer(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip().isdigit():
            raise ValueError(f"NSRL application ID must be an integer: {value}")
        return value.strip() if value is not None else None


class DatasetOptions(BaseModel):
    mode: WriteMode = WriteMode.APPEND
    output: Optional[str] = None
    debug: bool = False
    headers: bool = True
    separator: str = "\t"
    workers: int = Field(default=1, ge=1)
    verbose: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, value):
        if isinstance(value, WriteMode):
            return value
        letter = str(value).strip().upper()
        try:
            return WriteMode(letter)
        except ValueError:
            raise ValueError(f"Invalid parameter value: {value} (expected A or O)")

    @field_validator("separator")
    @classmethod
    def single_character(cls, value: str) -> str:
        if len(value) != 1 or value in "\r\n":
            raise ValueError(f"separator must be a single character, got {value!r}")
        return value


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]


def validate_diff_options(**values) -> DiffOptions:
    """Build DiffOptions, raising InvalidConfiguration on any bad value."""
    try:
        return DiffOptions(**values)
    except ValidationError as e:
        raise InvalidConfiguration(_first_error(e))


def validate_dataset_options(**values) -> DatasetOptions:
    """Build DatasetOptions, raising InvalidConfiguration on any bad value."""
    try:
        return DatasetOptions(**values)
    except ValidationError as e:
        raise InvalidConfiguration(_first_error(e))
