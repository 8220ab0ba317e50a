"""Archive tree indexing: filtering, bounded accumulation, summaries."""

from promptpack.indexer.accumulator import AppendStatus, BoundedTextAccumulator
from promptpack.indexer.cancel import CancellationToken
from promptpack.indexer.filters import PathFilter, parse_ignore_patterns, should_ignore
from promptpack.indexer.summary import summarize
from promptpack.indexer.tree import ArchiveTreeIndexer, entry_depth

__all__ = [
    "AppendStatus",
    "BoundedTextAccumulator",
    "CancellationToken",
    "PathFilter",
    "parse_ignore_patterns",
    "should_ignore",
    "summarize",
    "ArchiveTreeIndexer",
    "entry_depth",
]
