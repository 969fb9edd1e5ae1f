"""Resource store implementations."""

from .base import ResourceStore, delete_ignore_not_found
from .memory import InMemoryStore

__all__ = ["ResourceStore", "InMemoryStore", "delete_ignore_not_found"]
