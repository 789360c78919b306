"""Output rotation strategies."""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import BinaryIO

from .exceptions import ConfigError, LogIOError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_SIZE = 100 << 20  # 100 MiB
DEFAULT_CLOCK_FORMAT = "%Y-%m-%d_%H%M%S"
DEFAULT_FILE_MODE = 0o755


def parse_file_mode(mode: int | str) -> int:
    """Parse a permission mode given as an int or an octal string."""
    if isinstance(mode, int) and not isinstance(mode, bool):
        return mode
    try:
        return int(mode, 8)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"Invalid file permission mode: {mode!r}", details={"mode": mode}
        ) from e


class Rotator(ABC):
    """Decides when an output is full and supplies the next one."""

    @abstractmethod
    def accumulate(self, n: int) -> bool:
        """Count ``n`` freshly written bytes; return True when rotation is due."""
        pass

    @abstractmethod
    def rotate(self) -> BinaryIO:
        """Open the next output, close the previous one and return it."""
        pass

    @abstractmethod
    def current_handle(self) -> BinaryIO | None:
        """Return the output currently receiving bytes."""
        pass

    def close(self) -> None:
        """Close the current output."""
        handle = self.current_handle()
        if handle is not None:
            handle.close()


class FileSizeRotator(Rotator):
    """Rotates to a freshly named file once a byte limit is exceeded."""

    def __init__(
        self,
        path: str | os.PathLike[str] = "",
        prefix: str = "",
        extension: str = "",
        limit_size: int = 0,
        file_mode: int | str = DEFAULT_FILE_MODE,
        clock: Callable[[], datetime] | None = None,
    ):
        if limit_size < 0:
            raise ConfigError(
                "limit_size must not be negative", details={"limit_size": limit_size}
            )
        self.path = os.fspath(path)
        self.prefix = prefix or "app"
        self.extension = extension or "log"
        self.limit_size = limit_size or DEFAULT_LIMIT_SIZE
        self.file_mode = parse_file_mode(file_mode)
        self.clock_format = DEFAULT_CLOCK_FORMAT
        self.clock = clock or datetime.now

        self._size = 0
        self._size_lock = threading.Lock()
        self._handle: BinaryIO | None = None

    @property
    def current_size(self) -> int:
        with self._size_lock:
            return self._size

    def accumulate(self, n: int) -> bool:
        if n < 0:
            raise ValueError("Byte count must not be negative")
        with self._size_lock:
            self._size += n
            return self._size > self.limit_size

    def next_name(self) -> str:
        """Build the path of the file the next rotation opens."""
        stamp = self.clock().strftime(self.clock_format)
        name = f"{self.prefix}_{stamp}_{self.current_size}.{self.extension}"
        return os.path.join(self.path, name)

    def rotate(self) -> BinaryIO:
        file_path = self.next_name()

        try:
            fd = os.open(file_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, self.file_mode)
        except OSError as e:
            raise LogIOError(
                f"Cannot open log file {file_path}: {e}",
                details={"path": file_path, "errno": e.errno},
                recoverable=True,
            ) from e

        try:
            # os.open obeys the umask, the file must carry the literal mode
            os.chmod(file_path, self.file_mode)
            handle = os.fdopen(fd, "ab", buffering=0)
        except OSError as e:
            os.close(fd)
            raise LogIOError(
                f"Cannot set permissions on log file {file_path}: {e}",
                details={"path": file_path, "errno": e.errno},
                recoverable=True,
            ) from e

        old = self._handle
        if old is not None:
            try:
                old.close()
            except OSError as e:
                logger.warning("Failed to close rotated log file: %s", e)

        self._handle = handle
        with self._size_lock:
            self._size = 0

        return handle

    def current_handle(self) -> BinaryIO | None:
        return self._handle

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class NopRotator(Rotator):
    """Never rotates; wraps a fixed output such as stdout."""

    def __init__(self, handle: BinaryIO | None = None):
        self._handle = handle

    def accumulate(self, n: int) -> bool:
        return False

    def rotate(self) -> BinaryIO:
        if self._handle is None:
            raise LogIOError("NopRotator has no output to hand out")
        return self._handle

    def current_handle(self) -> BinaryIO | None:
        return self._handle

    def close(self) -> None:
        # The wrapped stream belongs to the caller
        self._handle = None


class RotatingStream:
    """File-like writer over a rotator, usable with ``logging.StreamHandler``."""

    def __init__(self, rotator: Rotator, encoding: str = "utf-8"):
        self.rotator = rotator
        self.encoding = encoding
        self._lock = threading.Lock()
        self._failing = False
        if rotator.current_handle() is None:
            rotator.rotate()

    def writable(self) -> bool:
        return True

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode(self.encoding)

        failure: LogIOError | None = None
        with self._lock:
            handle = self.rotator.current_handle()
            if handle is None:
                raise LogIOError("Rotating stream is closed")
            n = handle.write(data)
            if n is None:
                n = len(data)
            if self.rotator.accumulate(n):
                try:
                    self.rotator.rotate()
                    self._failing = False
                except LogIOError as e:
                    # Only the first failure of a streak is reported
                    if not self._failing:
                        failure = e
                    self._failing = True

        # Outside the lock: this stream may back a logging handler
        if failure is not None:
            logger.error("Log rotation failed, keeping current file: %s", failure)
        return n

    def flush(self) -> None:
        with self._lock:
            handle = self.rotator.current_handle()
            if handle is not None:
                handle.flush()

    def close(self) -> None:
        with self._lock:
            self.rotator.close()
