"""Utility modules."""

from .config_loader import DEFAULT_CONFIG, ConfigLoader, get_nested, load_config
from .logger import LoggerMixin, get_logger, setup_logger

__all__ = [
    "DEFAULT_CONFIG",
    "ConfigLoader",
    "load_config",
    "get_nested",
    "setup_logger",
    "get_logger",
    "LoggerMixin",
]
