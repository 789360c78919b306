"""Configuration data models."""

from pathlib import Path

from pydantic import BaseModel, field_serializer, field_validator

from ..core.models import Level
from ..core.rotator import DEFAULT_LIMIT_SIZE, parse_file_mode
from ..core.templates import DEFAULT_HEADER, HeaderTemplate


class LoggerConfig(BaseModel):
    """Settings for one StructuredLogger and its rotating files."""

    # Rotated files
    directory: Path = Path("")  # empty = current working directory
    prefix: str = "app"
    extension: str = "log"
    limit_size: int = DEFAULT_LIMIT_SIZE  # bytes, 0 = default
    file_mode: str = "0755"

    # Rendering
    level: Level = Level.INFO
    header: str = DEFAULT_HEADER
    color: bool = False

    @field_validator("directory", mode="before")
    def validate_directory(cls, v: str | Path | None) -> Path:
        if v is None:
            return Path("")
        return Path(v) if isinstance(v, str) else v

    @field_validator("prefix", "extension")
    def validate_name_part(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("must not contain path separators")
        return v

    @field_validator("limit_size")
    def validate_limit_size(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v or DEFAULT_LIMIT_SIZE

    @field_validator("file_mode", mode="before")
    def validate_file_mode(cls, v: str | int) -> str:
        if isinstance(v, int) and not isinstance(v, bool):
            return format(v, "04o")
        # Raises ConfigError for non-octal strings and other types
        parse_file_mode(v)
        return v

    @field_validator("level", mode="before")
    def validate_level(cls, v: str | int | Level) -> Level:
        return Level.parse(v)

    @field_validator("header")
    def validate_header(cls, v: str) -> str:
        ok, errors = HeaderTemplate(v).validate()
        if not ok:
            raise ValueError("; ".join(errors))
        return v

    @field_serializer("level")
    def serialize_level(self, v: Level) -> str:
        return v.name
