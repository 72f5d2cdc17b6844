"""Logging setup for the command line and the pipeline."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from tqdm import tqdm

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that flood DEBUG output
NOISY_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine")


class TqdmHandler(logging.StreamHandler):
    """Console handler that writes above an active tqdm progress bar."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Route all log records to stderr and, optionally, a rotating file.

    Stdout is left to command output, so ``--json`` stays parseable with
    logging enabled.

    Args:
        level: Level name; unknown names fall back to INFO.
        log_file: Log file path; its directory is created if missing.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.

    Returns:
        Root logger instance.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    handlers: list = [TqdmHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(f"Logging configured: level={level}, file={log_file}")
    return root_logger


def setup_logging_from_config(config: Dict[str, Any], verbose: bool = False) -> logging.Logger:
    """Apply the ``logging`` section of the YAML config; ``verbose`` forces DEBUG."""
    section = config.get("logging") or {}
    level = "DEBUG" if verbose else section.get("level", "INFO")
    return setup_logging(level=level, log_file=section.get("file"))


def get_logger(name: str) -> logging.Logger:
    """Module logger; a thin alias kept so modules import from one place."""
    return logging.getLogger(name)
