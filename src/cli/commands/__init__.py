"""CLI command modules."""

from .daemon import daemon
from .notify import app_open, complete, evaluate, learn, reset, status

__all__ = [
    "evaluate",
    "status",
    "app_open",
    "complete",
    "learn",
    "reset",
    "daemon",
]
