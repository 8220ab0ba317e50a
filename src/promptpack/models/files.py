"""Persistent file records and bundle toggles."""

import time
from dataclasses import dataclass, field
from typing import Optional

from promptpack.utils.language import ARCHIVE_KIND


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class StoredFile:
    """An imported file living under private storage.

    `file_path` is unique across the store; `id` is assigned by the store
    on first upsert and never reused.
    """

    display_name: str
    file_path: str
    id: Optional[int] = None
    language: Optional[str] = None
    size_bytes: int = 0
    extension: Optional[str] = None
    created_at: int = field(default_factory=now_millis)
    last_accessed_at: int = field(default_factory=now_millis)
    last_known_tree: Optional[str] = None
    summary: Optional[str] = None
    custom_ignore_patterns: Optional[str] = None
    is_favorite: bool = False
    is_archived: bool = False

    @property
    def is_archive(self) -> bool:
        return self.language == ARCHIVE_KIND


@dataclass(frozen=True)
class BundleConfig:
    """Which sections go into a context bundle.

    Every combination is valid. `include_excerpts` only changes the tree
    section, so it has no effect while `include_tree` is off.
    """

    include_tree: bool = True
    include_excerpts: bool = True
    include_summary: bool = True
    include_instructions: bool = True
