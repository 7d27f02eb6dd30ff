"""Utility helpers package."""

from vcsq.util.logging import configure_logging, get_logger, normalize_level

__all__ = ["configure_logging", "get_logger", "normalize_level"]
