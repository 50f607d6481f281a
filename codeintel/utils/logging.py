"""Rich console logging for the CLI, the service and the analysis workers."""

import logging
import threading
from pathlib import Path
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

console = Console()

ROOT_LOGGER = "codeintel"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s:%(lineno)d | %(message)s"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


def _console_handler(level: int) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    # The file keeps debug records whatever the console level is
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(level: LogLevel = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Route the ``codeintel`` logger tree to the console and optionally a file.

    Calling it again replaces the handlers of the previous call, so a CLI
    command and the API factory can both configure logging.
    """
    numeric_level = getattr(logging, level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    logger.addHandler(_console_handler(numeric_level))
    if log_file:
        logger.addHandler(_file_handler(log_file))
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """``codeintel.<name>``, or the package root logger without a name."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class LogContext:
    """Logs ``>>> message`` on enter and ``<<< message [DONE|FAILED]`` on exit.

    Nested contexts are indented. The depth is kept per thread because
    several projects are analyzed by the worker pool at once.
    """

    _depth = threading.local()

    def __init__(self, message: str, logger: logging.Logger | None = None):
        self.message = message
        self.logger = logger or get_logger()

    @classmethod
    def _current_depth(cls) -> int:
        return getattr(cls._depth, "value", 0)

    @classmethod
    def _set_depth(cls, value: int) -> None:
        cls._depth.value = max(value, 0)

    def __enter__(self) -> "LogContext":
        depth = self._current_depth()
        self.logger.info(f"{'  ' * depth}[bold blue]>>>[/bold blue] {self.message}")
        self._set_depth(depth + 1)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._set_depth(self._current_depth() - 1)
        indent = "  " * self._current_depth()
        if exc_type:
            self.logger.error(f"{indent}[bold red]<<<[/bold red] {self.message} [FAILED]")
        else:
            self.logger.info(f"{indent}[bold green]<<<[/bold green] {self.message} [DONE]")
