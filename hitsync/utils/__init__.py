"""Utility modules for swing reconciliation."""

from hitsync.utils.logging_config import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
]
