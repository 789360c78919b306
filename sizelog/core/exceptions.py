"""Exception hierarchy with structured error details."""

from typing import Any


class SizeLogError(Exception):
    """Base exception with structured details."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class ConfigError(SizeLogError):
    """Invalid configuration."""

    pass


class LogIOError(SizeLogError):
    """Opening, writing or re-permissioning an output failed."""

    pass


class SerializationError(SizeLogError):
    """A message body could not be rendered."""

    pass


class LogPanic(SizeLogError):
    """Raised by panic-class log calls after the line is written."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message, details={"value": value})
        self.value = value
