"""Transient results of tree indexing and chunked reads."""

from dataclasses import dataclass, field
from typing import Optional

# Offset returned by a chunked read once the end of the file is reached
END_OF_FILE = -1


@dataclass
class IndexStats:
    """Per-run statistics of an archive scan."""

    entries_scanned: int = 0
    entries_included: int = 0
    entries_ignored: int = 0
    entries_truncated: int = 0
    bytes_truncated: int = 0
    truncated_by_file_cap: bool = False
    truncated_by_total_cap: bool = False
    entry_cap_reached: bool = False
    cancelled: bool = False
    error: Optional[str] = None
    languages: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass
class IndexResult:
    """Tree text plus the statistics of the run that produced it."""

    text: str
    stats: IndexStats


@dataclass(frozen=True)
class ChunkResult:
    """Decoded window of a stored file.

    `next_offset` is END_OF_FILE once the read reached the end.
    """

    text: str
    next_offset: int

    @property
    def at_end(self) -> bool:
        return self.next_offset == END_OF_FILE
