"""Core data models for sizelog."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from .exceptions import SizeLogError


class Level(IntEnum):
    """Severity levels, ascending. PRINT bypasses the threshold."""

    PRINT = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    OFF = 5

    @property
    def label(self) -> str:
        if self is Level.PRINT:
            return "-"
        return self.name

    @classmethod
    def parse(cls, value: str | int | Level) -> Level:
        """Parse a level from its name or numeric value."""
        if isinstance(value, Level):
            return value
        if isinstance(value, int):
            return cls(value)

        name = value.strip().upper()
        if name == "WARNING":
            name = "WARN"
        if name.isdigit():
            return cls(int(name))
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None


class MessageKind(str, Enum):
    """How the arguments of a log call become the message body."""

    TEXT = "text"  # space separated, like print()
    PRINTF = "printf"  # fmt % args
    JSON = "json"  # one value, serialized


@dataclass(frozen=True)
class LogResult:
    """Outcome of a single log call."""

    written: int = 0
    dropped: bool = False
    rotated: bool = False
    fatal: bool = False
    message: str = ""
    error: SizeLogError | None = None
    rotation_error: SizeLogError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error
