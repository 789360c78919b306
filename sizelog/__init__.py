"""sizelog - structured logging into size-rotated files."""

__version__ = "0.1.0"

from .core.exceptions import (
    ConfigError,
    LogIOError,
    LogPanic,
    SerializationError,
    SizeLogError,
)
from .core.logging import StructuredLogger, get_logger
from .core.models import Level, LogResult, MessageKind
from .core.rotator import FileSizeRotator, NopRotator, RotatingStream, Rotator
from .core.templates import DEFAULT_HEADER, HeaderTemplate

__all__ = [
    "__version__",
    "StructuredLogger",
    "get_logger",
    "Level",
    "LogResult",
    "MessageKind",
    "Rotator",
    "FileSizeRotator",
    "NopRotator",
    "RotatingStream",
    "HeaderTemplate",
    "DEFAULT_HEADER",
    "SizeLogError",
    "ConfigError",
    "LogIOError",
    "SerializationError",
    "LogPanic",
    "main",
]


def main() -> None:
    """Main entry point for sizelog."""
    from .cli import main as cli_main

    cli_main()
