"""Handlers package for bot command and message processing."""

from . import chat
from . import common
from . import documents

__all__ = [
    "common",
    "documents",
    "chat",
]
