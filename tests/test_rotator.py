"""Tests for the rotation strategies."""

import io
import logging
import os
import stat
import sys
import threading
from pathlib import Path

import pytest
from conftest import log_files

from sizelog.core.exceptions import ConfigError, LogIOError
from sizelog.core.rotator import (
    DEFAULT_LIMIT_SIZE,
    FileSizeRotator,
    NopRotator,
    RotatingStream,
)


def test_defaults_are_substituted(tmp_path: Path) -> None:
    """Empty prefix, extension and a zero limit fall back to the defaults."""
    rotator = FileSizeRotator(tmp_path, "", "", 0)

    assert rotator.prefix == "app"
    assert rotator.extension == "log"
    assert rotator.limit_size == DEFAULT_LIMIT_SIZE == 100 * 1024 * 1024


def test_accumulate_signals_only_above_limit(tmp_path: Path) -> None:
    """Reaching the limit exactly is not enough, exceeding it is."""
    rotator = FileSizeRotator(tmp_path, limit_size=10)

    assert rotator.accumulate(10) is False
    assert rotator.accumulate(1) is True
    assert rotator.current_size == 11


def test_accumulate_rejects_negative_counts(tmp_path: Path) -> None:
    rotator = FileSizeRotator(tmp_path, limit_size=10)

    with pytest.raises(ValueError):
        rotator.accumulate(-1)


def test_concurrent_accumulate_loses_no_updates(tmp_path: Path) -> None:
    """Counter updates from many threads all land."""
    rotator = FileSizeRotator(tmp_path, limit_size=10**9)

    def worker() -> None:
        for _ in range(1000):
            rotator.accumulate(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert rotator.current_size == 8000


def test_rotate_names_file_and_resets_counter(tmp_path: Path, fake_clock) -> None:
    """The next file embeds the timestamp and the byte count at rotation time."""
    rotator = FileSizeRotator(tmp_path, "svc", "txt", 100, clock=fake_clock)

    first = rotator.rotate()
    first.write(b"x" * 150)
    assert rotator.accumulate(150) is True

    second = rotator.rotate()

    assert first.closed
    assert not second.closed
    assert rotator.current_handle() is second
    assert rotator.current_size == 0
    assert [p.name for p in log_files(tmp_path, "txt")] == [
        "svc_2024-01-02_030405_0.txt",
        "svc_2024-01-02_030406_150.txt",
    ]
    rotator.close()


def test_names_differ_across_seconds(tmp_path: Path, fake_clock) -> None:
    rotator = FileSizeRotator(tmp_path, clock=fake_clock)

    assert rotator.next_name() != rotator.next_name()


def test_next_name_joins_directory(tmp_path: Path, fake_clock) -> None:
    rotator = FileSizeRotator(tmp_path, "app", "log", clock=fake_clock)

    assert rotator.next_name() == os.path.join(
        str(tmp_path), "app_2024-01-02_030405_0.log"
    )


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_rotate_applies_mode_regardless_of_umask(tmp_path: Path) -> None:
    """Files carry 0755 even when the umask would strip bits."""
    old_umask = os.umask(0o077)
    try:
        rotator = FileSizeRotator(tmp_path)
        rotator.rotate()
    finally:
        os.umask(old_umask)

    (created,) = log_files(tmp_path)
    assert stat.S_IMODE(created.stat().st_mode) == 0o755
    rotator.close()


def test_file_mode_accepts_octal_string(tmp_path: Path) -> None:
    assert FileSizeRotator(tmp_path, file_mode="0644").file_mode == 0o644


def test_invalid_file_mode_is_a_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        FileSizeRotator(tmp_path, file_mode="rwxr-xr-x")


@pytest.mark.parametrize("mode", [7.5, None, True])
def test_non_string_file_mode_is_a_config_error(tmp_path: Path, mode) -> None:
    with pytest.raises(ConfigError):
        FileSizeRotator(tmp_path, file_mode=mode)


def test_negative_limit_is_a_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        FileSizeRotator(tmp_path, limit_size=-1)


def test_failed_rotate_keeps_previous_state(tmp_path: Path) -> None:
    """An unopenable target raises LogIOError and leaves handle and counter alone."""
    target = tmp_path / "logs"
    target.mkdir()
    rotator = FileSizeRotator(target, limit_size=10)
    handle = rotator.rotate()
    rotator.accumulate(20)

    for path in target.iterdir():
        path.unlink()
    target.rmdir()

    with pytest.raises(LogIOError) as exc_info:
        rotator.rotate()

    assert exc_info.value.recoverable
    assert rotator.current_handle() is handle
    assert not handle.closed
    assert rotator.current_size == 20
    rotator.close()


def test_nop_rotator_never_rotates() -> None:
    stream = io.BytesIO()
    rotator = NopRotator(stream)

    assert rotator.accumulate(10**12) is False
    assert rotator.rotate() is stream
    assert rotator.current_handle() is stream


def test_nop_rotator_without_output_cannot_rotate() -> None:
    with pytest.raises(LogIOError):
        NopRotator().rotate()


def test_rotating_stream_backs_a_stdlib_handler(tmp_path: Path, fake_clock) -> None:
    """A RotatingStream rotates files underneath a logging.StreamHandler."""
    stream = RotatingStream(FileSizeRotator(tmp_path, "std", "log", 64, clock=fake_clock))
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    std_logger = logging.getLogger("sizelog.tests.rotating_stream")
    std_logger.propagate = False
    std_logger.setLevel(logging.INFO)
    std_logger.addHandler(handler)

    try:
        for i in range(20):
            std_logger.info("record %02d", i)
    finally:
        std_logger.removeHandler(handler)
        stream.close()

    files = log_files(tmp_path)
    lines = "".join(p.read_text(encoding="utf-8") for p in files).splitlines()
    assert len(files) > 1
    assert lines == [f"INFO record {i:02d}" for i in range(20)]


def test_rotating_stream_write_after_close_fails(tmp_path: Path) -> None:
    stream = RotatingStream(FileSizeRotator(tmp_path))
    stream.close()

    with pytest.raises(LogIOError):
        stream.write(b"late\n")
