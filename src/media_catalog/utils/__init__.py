"""Utility helpers for the media catalog."""

from .errors import (
    IdentityCollisionError,
    MediaCatalogError,
    PersistenceError,
    ProbeError,
    ProbeFailure,
    TagReadError,
    WatchError,
)
from .logging_config import configure_third_party_loggers, set_log_level, setup_logging

__all__ = [
    "MediaCatalogError",
    "TagReadError",
    "ProbeError",
    "ProbeFailure",
    "IdentityCollisionError",
    "WatchError",
    "PersistenceError",
    "setup_logging",
    "configure_third_party_loggers",
    "set_log_level",
]
