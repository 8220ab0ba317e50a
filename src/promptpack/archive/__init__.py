"""Streaming access to zip/jar archives."""

from promptpack.archive.stream import ArchiveEntry, iter_entries

__all__ = ["ArchiveEntry", "iter_entries"]
