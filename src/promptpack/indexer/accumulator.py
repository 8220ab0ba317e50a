"""Append-only text sink with a per-entry and a global budget."""

import logging
from enum import Enum
from typing import Iterable

logger = logging.getLogger(__name__)

INDENT = "│   "
CONTENT_TRUNCATED = "[content truncated]"


class AppendStatus(str, Enum):
    OK = "ok"
    ENTRY_FULL = "entry_full"
    TOTAL_FULL = "total_full"


class BoundedTextAccumulator:
    """Collects tree lines until either cap is reached.

    The global cap counts UTF-8 bytes of everything written, headers
    included. The per-entry cap counts characters of content lines
    (newline included, indentation excluded) since the last header.
    Lines are written whole or not at all.
    """

    def __init__(self, total_cap: int, per_entry_cap: int):
        self.total_cap = total_cap
        self.per_entry_cap = per_entry_cap
        self.total_bytes = 0
        self.entry_chars = 0
        self.entry_truncated = False
        self.entries_truncated = 0
        self.truncated_by_total_cap = False
        self._parts: list[str] = []

    @property
    def truncated_by_file_cap(self) -> bool:
        return self.entries_truncated > 0

    def _write(self, text: str) -> bool:
        if self.truncated_by_total_cap:
            return False
        size = len(text.encode("utf-8"))
        if self.total_bytes + size > self.total_cap:
            self.truncated_by_total_cap = True
            logger.debug(f"Output cap of {self.total_cap} bytes reached")
            return False
        self._parts.append(text)
        self.total_bytes += size
        return True

    def append_entry_header(self, depth: int, marker: str, name: str) -> bool:
        """Start a new entry. Headers bypass the per-entry budget."""
        self.entry_chars = 0
        self.entry_truncated = False
        return self._write(f"{INDENT * depth}{marker}{name}\n")

    def append_marker(self, depth: int, text: str) -> bool:
        """Write a single marker line such as a skipped-content notice."""
        return self._write(f"{INDENT * depth}{text}\n")

    def append_line(self, depth: int, line: str) -> AppendStatus:
        if self.truncated_by_total_cap:
            return AppendStatus.TOTAL_FULL
        if self.entry_truncated:
            return AppendStatus.ENTRY_FULL

        cost = len(line) + 1
        if self.entry_chars + cost > self.per_entry_cap:
            return self.truncate_entry(depth)

        if not self._write(f"{INDENT * depth}{line}\n"):
            return AppendStatus.TOTAL_FULL
        self.entry_chars += cost
        return AppendStatus.OK

    def append_entry_body(self, depth: int, lines: Iterable[str]) -> AppendStatus:
        """Append lines until one of the caps stops the entry."""
        for line in lines:
            status = self.append_line(depth, line)
            if status is not AppendStatus.OK:
                return status
        return AppendStatus.OK

    def truncate_entry(self, depth: int) -> AppendStatus:
        """Close the current entry with a single truncation marker."""
        if not self.entry_truncated:
            self.entry_truncated = True
            self.entries_truncated += 1
            if not self.append_marker(depth, CONTENT_TRUNCATED):
                return AppendStatus.TOTAL_FULL
        return AppendStatus.ENTRY_FULL

    def append_footer(self, text: str) -> None:
        """Append the closing footer; it is the one write allowed past the cap."""
        self._parts.append(f"{text}\n")
        self.total_bytes += len(text.encode("utf-8")) + 1

    def getvalue(self) -> str:
        return "".join(self._parts)
