"""Shared fixtures for the sizelog test suite."""

import itertools
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from sizelog.core.logging import StructuredLogger


@pytest.fixture()
def fake_clock() -> Callable[[], datetime]:
    """A clock that advances one second per call, so rotated names never collide."""
    start = datetime(2024, 1, 2, 3, 4, 5)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture()
def make_logger(
    tmp_path: Path, fake_clock: Callable[[], datetime]
) -> Iterator[Callable[..., StructuredLogger]]:
    """Factory for loggers writing into ``tmp_path``; closed on teardown."""
    created: list[StructuredLogger] = []

    def factory(**kwargs: Any) -> StructuredLogger:
        kwargs.setdefault("path", tmp_path)
        kwargs.setdefault("clock", fake_clock)
        logger = StructuredLogger(**kwargs)
        created.append(logger)
        return logger

    yield factory

    for logger in created:
        logger.close()


def log_files(directory: Path, extension: str = "log") -> list[Path]:
    """Rotated files in creation order (names embed the fake clock)."""
    return sorted(directory.glob(f"*.{extension}"))


def read_all(directory: Path, extension: str = "log") -> str:
    return "".join(p.read_text(encoding="utf-8") for p in log_files(directory, extension))
