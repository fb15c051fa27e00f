"""CLI logging configuration with file output.

Log files are split by CLI command under the configured log directory
(default ``~/.local/share/controller-cleaner/logs/``)::

    scan.log
    clean.log

Usage from any CLI command::

    from controller_cleaner.cli.logging import configure_cli_logging

    configure_cli_logging("scan", verbose=verbose)
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from controller_cleaner.settings import get_log_dir

_CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def get_log_file(command: str) -> Path:
    """Return the log file path for a CLI command, creating its directory."""
    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    console_level: int | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
) -> Path | None:
    """Configure logging for a CLI command.

    Sets up:
    - File handler: DEBUG-level rotating log at ``<log-dir>/<command>.log``
    - Console handler on stderr: WARNING, or INFO when ``verbose``

    Args:
        command: CLI command name (e.g., "scan", "clean")
        verbose: If True, set console to INFO level
        console_level: Override console level (takes precedence over verbose)
        file_level: File log level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated backups to keep

    Returns:
        Path to the log file, or None if the log directory is not writable.
    """
    package_logger = logging.getLogger("controller_cleaner")

    # Remove handlers from earlier calls to avoid duplicate output
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    level = console_level
    if level is None:
        level = logging.INFO if verbose else logging.WARNING
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    package_logger.addHandler(console_handler)

    log_file: Path | None
    try:
        log_file = get_log_file(command)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        package_logger.warning(f"File logging disabled: {e}")
        log_file = None
    else:
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        package_logger.addHandler(file_handler)

    # NOTSET would inherit WARNING from the root logger and starve the file handler
    package_logger.setLevel(min(level, file_level))
    return log_file
