"""Logging setup for Travel Recap.

Everything logs under the ``travelrecap`` namespace. Console output goes to
stderr through Rich so it never mixes with ``story --json`` on stdout; an
optional plain-text file handler mirrors it.

Playback is chatty at DEBUG (one line per slide change, one per dropped
stale tick), so its loggers stay at INFO unless ``trace_playback`` is set.

Example:
    >>> from travelrecap.utils.logging import configure_logging, LogContext
    >>> configure_logging(get_config())
    >>> with LogContext("Compiling story") as ctx:
    ...     slides = compile_story(destinations)
    >>> ctx.elapsed_ms
    3.1
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from travelrecap.config import AppConfig


PACKAGE_NAME = "travelrecap"

# Per-tick and per-transition output from the story player.
PLAYBACK_LOGGERS = (
    "travelrecap.core.playback",
    "travelrecap.core.autoplay",
)

# The autoplay timer runs on asyncio, which reports slow callbacks at DEBUG.
THIRD_PARTY_LOGGERS = ("asyncio",)

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console = Console(stderr=True)


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    trace_playback: bool = False,
) -> logging.Logger:
    """Install the console (and optional file) handlers on the package logger.

    Safe to call repeatedly; previous handlers are closed and replaced.

    Args:
        level: Log level name.
        log_file: Also write records here, creating parent directories.
        trace_playback: Keep playback loggers at ``level`` even below INFO.

    Returns:
        The configured ``travelrecap`` logger.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    package_logger = logging.getLogger(PACKAGE_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.addHandler(_console_handler(numeric_level))
    if log_file:
        package_logger.addHandler(_file_handler(Path(log_file), numeric_level))

    playback_level = numeric_level if trace_playback else max(numeric_level, logging.INFO)
    for name in PLAYBACK_LOGGERS:
        logging.getLogger(name).setLevel(playback_level)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug(f"Logging configured: level={logging.getLevelName(numeric_level)}, file={log_file}")
    return package_logger


def configure_logging(config: AppConfig) -> logging.Logger:
    """``setup_logging`` driven by the application config.

    ``--debug`` also traces playback; ``logs.level: DEBUG`` alone does not.
    """
    return setup_logging(
        level=config.effective_log_level,
        log_file=config.logs.file,
        trace_playback=config.debug,
    )


def _console_handler(level: int) -> logging.Handler:
    handler = RichHandler(
        console=_console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=level <= logging.DEBUG,
        markup=False,
    )
    handler.setLevel(level)
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


class LogContext:
    """Time a pipeline stage and log its start and outcome.

    Attributes:
        message: Stage description, e.g. ``"Building story"``.
        elapsed_ms: Wall time of the stage, set on exit.
    """

    def __init__(
        self,
        message: str,
        level: int = logging.INFO,
        logger: logging.Logger | None = None,
    ) -> None:
        self.message = message
        self.level = level
        self.logger = logger or logging.getLogger(PACKAGE_NAME)
        self.elapsed_ms: float = 0.0
        self._started: float = 0.0

    def __enter__(self) -> "LogContext":
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.message}...")
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.message} failed after {self.elapsed_ms:.0f} ms: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.message} done in {self.elapsed_ms:.0f} ms")
