"""Structured logger writing to size-rotated files."""

from __future__ import annotations

import io
import json
import logging
import os
import sys
import threading
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import IO, TYPE_CHECKING, Any

import click

from .buffers import BufferPool
from .exceptions import LogIOError, LogPanic, SerializationError
from .models import Level, LogResult, MessageKind
from .rotator import DEFAULT_FILE_MODE, FileSizeRotator, Rotator
from .templates import DEFAULT_HEADER, HeaderTemplate

if TYPE_CHECKING:
    from ..config.models import LoggerConfig

diagnostics = logging.getLogger(__name__)

LEVEL_COLORS = {
    Level.DEBUG: "blue",
    Level.INFO: "green",
    Level.WARN: "yellow",
    Level.ERROR: "red",
}


def _find_caller() -> tuple[str, int]:
    """Return file and line of the first frame outside this module."""
    frame = sys._getframe(1)
    while frame is not None:
        filename = frame.f_code.co_filename
        if os.path.normcase(filename) != _srcfile:
            return filename, frame.f_lineno
        frame = frame.f_back
    return "???", 0


_srcfile = os.path.normcase(_find_caller.__code__.co_filename)


def _rfc3339_now() -> str:
    stamp = datetime.now().astimezone().isoformat(timespec="seconds")
    if stamp.endswith("+00:00"):
        stamp = stamp[:-6] + "Z"
    return stamp


def _write_to(output: IO[Any], data: bytes) -> int:
    """Write rendered bytes to a binary or text output; return bytes written."""
    if isinstance(output, io.TextIOBase):
        output.write(data.decode("utf-8"))
        output.flush()
        return len(data)

    n = output.write(data)
    output.flush()
    return len(data) if n is None else n


class StructuredLogger:
    """Logger rendering a templated header plus message per line.

    Every call renders, writes and, when the rotator reports the byte limit
    crossed, switches to the next file, all under one lock. Lines therefore
    never interleave and appear in the order callers acquired the lock.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] = "",
        prefix: str = "app",
        limit_size: int = 0,
        *,
        extension: str = "log",
        level: Level | int | str = Level.INFO,
        header: str = DEFAULT_HEADER,
        file_mode: int | str = DEFAULT_FILE_MODE,
        rotator: Rotator | None = None,
        on_fatal: Callable[[LogResult], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._prefix = prefix
        self._level = Level.parse(level)
        self._template = HeaderTemplate(header)
        self._pool = BufferPool()
        self._mutex = threading.Lock()
        self._color = False
        self._levels: list[str] = []
        self._set_color(False)
        self.on_fatal = on_fatal

        self._rotator = rotator or FileSizeRotator(
            path, prefix, extension, limit_size, file_mode=file_mode, clock=clock
        )
        # Without a first file there is nothing to log to
        handle = self._rotator.current_handle() or self._rotator.rotate()
        self._swap_output(handle)

    @classmethod
    def from_config(cls, config: LoggerConfig, **kwargs: Any) -> StructuredLogger:
        """Build a logger from a LoggerConfig."""
        logger = cls(
            config.directory,
            config.prefix,
            config.limit_size,
            extension=config.extension,
            level=config.level,
            header=config.header,
            file_mode=config.file_mode,
            **kwargs,
        )
        if config.color:
            logger.enable_color()
        return logger

    # -- settings ---------------------------------------------------------

    def _set_color(self, enabled: bool) -> None:
        labels = []
        for level in Level:
            label = level.label
            if enabled and level in LEVEL_COLORS:
                label = click.style(label, fg=LEVEL_COLORS[level])
            labels.append(label)
        # Readers index the list without the lock, so swap it whole
        self._levels = labels
        self._color = enabled

    @property
    def color_enabled(self) -> bool:
        return self._color

    def enable_color(self) -> None:
        with self._mutex:
            self._set_color(True)

    def disable_color(self) -> None:
        with self._mutex:
            self._set_color(False)

    @property
    def prefix(self) -> str:
        return self._prefix

    def set_prefix(self, prefix: str) -> None:
        self._prefix = prefix

    @property
    def level(self) -> Level:
        return self._level

    def set_level(self, level: Level | int | str) -> None:
        self._level = Level.parse(level)

    @property
    def header(self) -> str:
        return self._template.source

    def set_header(self, header: str) -> None:
        self._template = HeaderTemplate(header)

    @property
    def rotator(self) -> Rotator:
        return self._rotator

    @property
    def output(self) -> IO[Any]:
        return self._output

    def set_output(self, output: IO[Any]) -> None:
        with self._mutex:
            self._swap_output(output)

    def _swap_output(self, output: IO[Any]) -> None:
        self._output = output
        isatty = getattr(output, "isatty", None)
        if isatty is None or not isatty():
            self._set_color(False)

    def close(self) -> None:
        """Close the file currently receiving lines."""
        with self._mutex:
            self._rotator.close()

    # -- core -------------------------------------------------------------

    def log(
        self,
        level: Level | int,
        kind: MessageKind = MessageKind.TEXT,
        args: tuple[Any, ...] = (),
        fmt: str | None = None,
    ) -> LogResult:
        """Render one line and write it, rotating the output when it is full."""
        level = Level(level)
        if level != Level.PRINT and level < self._level:
            return LogResult(dropped=True)

        with self._mutex:
            buf = self._pool.get()
            try:
                long_file, line = _find_caller()
                message, is_object = self._render_message(kind, args, fmt)
                self._render_line(buf, level, message, kind, is_object, long_file, line)
                try:
                    n = _write_to(self._output, bytes(buf))
                except (OSError, ValueError) as e:
                    error = LogIOError(
                        f"Failed to write log line: {e}",
                        details={"level": level.label},
                        recoverable=True,
                    )
                    return LogResult(message=message, error=error)
            finally:
                self._pool.put(buf)

            if not self._rotator.accumulate(n):
                return LogResult(written=n, message=message)

            try:
                self._swap_output(self._rotator.rotate())
            except LogIOError as e:
                self._report_rotation_failure(e)
                return LogResult(written=n, message=message, rotation_error=e)

            return LogResult(written=n, rotated=True, message=message)

    def _render_message(
        self, kind: MessageKind, args: tuple[Any, ...], fmt: str | None
    ) -> tuple[str, bool]:
        """Render the message body; the flag tells if it is a JSON object."""
        if kind is MessageKind.TEXT:
            return " ".join(str(arg) for arg in args), False

        if kind is MessageKind.PRINTF:
            values: Any = args
            if len(args) == 1 and isinstance(args[0], Mapping):
                values = args[0]
            try:
                return (fmt or "") % values, False
            except (TypeError, ValueError, KeyError) as e:
                raise SerializationError(
                    f"Cannot format log message: {e}", details={"format": fmt}
                ) from e

        if len(args) != 1:
            raise SerializationError(
                "JSON log calls take exactly one value", details={"count": len(args)}
            )
        try:
            text = json.dumps(
                args[0], separators=(",", ":"), ensure_ascii=False, allow_nan=False
            )
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize log value: {e}") from e
        return text, text.startswith("{")

    def _render_line(
        self,
        buf: bytearray,
        level: Level,
        message: str,
        kind: MessageKind,
        is_object: bool,
        long_file: str,
        line: int,
    ) -> None:
        def tag_value(tag: str) -> str:
            if tag == "time_rfc3339":
                return _rfc3339_now()
            if tag == "level":
                return self._levels[level]
            if tag == "prefix":
                return self._prefix
            if tag == "long_file":
                return long_file
            if tag == "short_file":
                return os.path.basename(long_file)
            if tag == "line":
                return str(line)
            return ""

        self._template.execute(buf, tag_value)

        end = len(buf.rstrip())
        if end and buf[end - 1] == ord("}"):
            # JSON header: merge the message into the object
            del buf[end - 1 :]
            opened = buf.rstrip().endswith(b"{")
            if is_object:
                body = message[1:]
                if body.strip() != "}" and not opened:
                    buf += b","
                buf += body.encode("utf-8")
            else:
                if not opened:
                    buf += b","
                if kind is MessageKind.JSON:
                    value = message
                else:
                    value = json.dumps(message, ensure_ascii=False)
                buf += b'"message":' + value.encode("utf-8") + b"}"
        else:
            buf += b" " + message.encode("utf-8")

        buf += b"\n"

    def _report_rotation_failure(self, error: LogIOError) -> None:
        """Write a failed rotation to the current output at ERROR level."""
        if Level.ERROR < self._level:
            return

        buf = self._pool.get()
        try:
            long_file, line = _find_caller()
            message = f"log rotation failed: {error}"
            self._render_line(
                buf, Level.ERROR, message, MessageKind.TEXT, False, long_file, line
            )
            n = _write_to(self._output, bytes(buf))
        except (OSError, ValueError) as e:
            diagnostics.warning("Could not report log rotation failure: %s", e)
            return
        finally:
            self._pool.put(buf)

        # Counted, but the next rotation attempt waits for the next call
        self._rotator.accumulate(n)

    # -- convenience ------------------------------------------------------

    def print(self, *args: Any) -> LogResult:
        return self.log(Level.PRINT, MessageKind.TEXT, args)

    def printf(self, fmt: str, *args: Any) -> LogResult:
        return self.log(Level.PRINT, MessageKind.PRINTF, args, fmt)

    def printj(self, value: Mapping[str, Any]) -> LogResult:
        return self.log(Level.PRINT, MessageKind.JSON, (value,))

    def debug(self, *args: Any) -> LogResult:
        return self.log(Level.DEBUG, MessageKind.TEXT, args)

    def debugf(self, fmt: str, *args: Any) -> LogResult:
        return self.log(Level.DEBUG, MessageKind.PRINTF, args, fmt)

    def debugj(self, value: Mapping[str, Any]) -> LogResult:
        return self.log(Level.DEBUG, MessageKind.JSON, (value,))

    def info(self, *args: Any) -> LogResult:
        return self.log(Level.INFO, MessageKind.TEXT, args)

    def infof(self, fmt: str, *args: Any) -> LogResult:
        return self.log(Level.INFO, MessageKind.PRINTF, args, fmt)

    def infoj(self, value: Mapping[str, Any]) -> LogResult:
        return self.log(Level.INFO, MessageKind.JSON, (value,))

    def warn(self, *args: Any) -> LogResult:
        return self.log(Level.WARN, MessageKind.TEXT, args)

    warning = warn

    def warnf(self, fmt: str, *args: Any) -> LogResult:
        return self.log(Level.WARN, MessageKind.PRINTF, args, fmt)

    def warnj(self, value: Mapping[str, Any]) -> LogResult:
        return self.log(Level.WARN, MessageKind.JSON, (value,))

    def error(self, *args: Any) -> LogResult:
        return self.log(Level.ERROR, MessageKind.TEXT, args)

    def errorf(self, fmt: str, *args: Any) -> LogResult:
        return self.log(Level.ERROR, MessageKind.PRINTF, args, fmt)

    def errorj(self, value: Mapping[str, Any]) -> LogResult:
        return self.log(Level.ERROR, MessageKind.JSON, (value,))

    def _fatal(self, result: LogResult) -> LogResult:
        result = replace(result, fatal=True)
        if self.on_fatal is not None:
            self.on_fatal(result)
        return result

    def fatal(self, *args: Any) -> LogResult:
        return self._fatal(self.print(*args))

    def fatalf(self, fmt: str, *args: Any) -> LogResult:
        return self._fatal(self.printf(fmt, *args))

    def fatalj(self, value: Mapping[str, Any]) -> LogResult:
        return self._fatal(self.printj(value))

    def panic(self, *args: Any) -> None:
        result = self.print(*args)
        raise LogPanic(result.message, value=args)

    def panicf(self, fmt: str, *args: Any) -> None:
        result = self.printf(fmt, *args)
        raise LogPanic(result.message, value=args)

    def panicj(self, value: Mapping[str, Any]) -> None:
        result = self.printj(value)
        raise LogPanic(result.message, value=value)


_loggers: dict[str, StructuredLogger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str, config: LoggerConfig | None = None) -> StructuredLogger:
    """Get or create the logger registered under ``name``."""
    with _loggers_lock:
        if name not in _loggers:
            if config is None:
                from ..config.models import LoggerConfig

                config = LoggerConfig(prefix=name)
            _loggers[name] = StructuredLogger.from_config(config)
        return _loggers[name]
