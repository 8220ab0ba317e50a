"""Persistent storage for imported files."""

from promptpack.storage.store import FileStore

__all__ = ["FileStore"]
