"""
Centralized display utilities for console output and logging.
Provides rich console logging plus a plain log file, and summary tables.
"""

import logging
import os
from collections.abc import Sequence
from typing import Any, Protocol, cast

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

LOGGER_NAME = "process_migrator"

SUCCESS = 25
NOTICE = 21

# Log level names accepted in configuration files, mapped to logging levels
LOG_LEVEL_ALIASES = {
    "VERBOSE": logging.DEBUG,
    "INFORMATION": logging.INFO,
    "NOTICE": NOTICE,
    "SUCCESS": SUCCESS,
}


# Define Protocol for extended Logger with success and notice methods
class ExtendedLogger(Protocol):
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def success(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def notice(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


LOGGING_THEME = Theme(
    {
        "logging.level.debug": "dim",
        "logging.level.info": "blue",
        "logging.level.notice": "cyan",
        "logging.level.warning": "bold yellow",
        "logging.level.error": "bold red",
        "logging.level.critical": "bold red on white",
        "logging.level.success": "bold green",
    }
)

# Global console instance with theme
console = Console(theme=LOGGING_THEME)


def resolve_log_level(level: str) -> int:
    """Translate a configured level name into a numeric logging level."""
    name = level.upper()
    if name in LOG_LEVEL_ALIASES:
        return LOG_LEVEL_ALIASES[name]
    return getattr(logging, name, logging.INFO)


def configure_logging(
    level: str = "INFO", log_file: str | None = None
) -> ExtendedLogger:
    """
    Configure logging with rich formatting.

    Args:
        level: Logging level (Verbose/Information/Warning/Error or a standard level name)
        log_file: Optional path to a log file

    Returns:
        Configured logger instance
    """
    logging.addLevelName(SUCCESS, "SUCCESS")
    logging.addLevelName(NOTICE, "NOTICE")

    numeric_level = resolve_log_level(level)

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
        show_time=True,
        show_level=True,
        log_time_format="[%X]",
    )
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        # The file always receives verbose output so failures can be diagnosed
        file_format = logging.Formatter(
            "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(file_format)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    rich_handler.setLevel(numeric_level)
    logging.basicConfig(
        level=logging.DEBUG if log_file else numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(LOGGER_NAME)

    def success(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(SUCCESS):
            self._log(SUCCESS, message, args, stacklevel=2, **kwargs)

    def notice(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(NOTICE):
            self._log(NOTICE, message, args, stacklevel=2, **kwargs)

    setattr(logging.Logger, "success", success)
    setattr(logging.Logger, "notice", notice)

    if log_file:
        logger.debug("Log file: %s", log_file)

    return cast(ExtendedLogger, logger)


def render_counters(title: str, counters: dict[str, dict[str, int]], order: Sequence[str] = ()) -> Table:
    """Build a table of per-artifact counters (rows) by action (columns).

    Rows named in ``order`` come first in that order, the rest follow as recorded.
    """
    actions = sorted({action for row in counters.values() for action in row})
    table = Table(title=title)
    table.add_column("Artifact", style="bold")
    for action in actions:
        table.add_column(action.capitalize(), justify="right")
    artifacts = [artifact for artifact in order if artifact in counters]
    artifacts += [artifact for artifact in counters if artifact not in artifacts]
    for artifact in artifacts:
        row = counters[artifact]
        table.add_row(artifact, *(str(row.get(action, 0)) for action in actions))
    return table
