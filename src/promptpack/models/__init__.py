"""Data models for PromptPack."""

from promptpack.models.files import BundleConfig, StoredFile, now_millis
from promptpack.models.index import END_OF_FILE, ChunkResult, IndexResult, IndexStats

__all__ = [
    "BundleConfig",
    "StoredFile",
    "now_millis",
    "END_OF_FILE",
    "ChunkResult",
    "IndexResult",
    "IndexStats",
]
