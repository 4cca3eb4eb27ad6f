"""Runtime configuration module for the process migrator.

Owns the shared logger. Components import ``logger`` from here; the CLI
reconfigures it once the configuration file has been read.
"""

from pathlib import Path

from process_migrator.display import configure_logging

DEFAULT_CONFIG_FILE = Path("config/config.yaml")

logger = configure_logging("INFO", None)


def setup_logging(level: str, log_file: Path | str | None) -> None:
    """Reconfigure the shared logger with the configured level and log file."""
    configure_logging(level, str(log_file) if log_file else None)
