"""CLI command modules."""

from .database import db
from .scan import scan_command
from .watch import watch_command

__all__ = [
    "db",
    "scan_command",
    "watch_command",
]
