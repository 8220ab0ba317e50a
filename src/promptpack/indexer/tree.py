"""Bounded, human-readable trees of archive contents."""

import codecs
import logging
import zlib
from pathlib import Path
from typing import BinaryIO, Optional, Protocol

from promptpack.archive import ArchiveEntry, iter_entries
from promptpack.config import IndexerConfig
from promptpack.errors import ArchiveError, IndexCancelled
from promptpack.indexer.accumulator import AppendStatus, BoundedTextAccumulator
from promptpack.indexer.cancel import CancellationToken
from promptpack.indexer.filters import PathFilter
from promptpack.models import IndexResult, IndexStats
from promptpack.utils.binary import detect_binary, is_binary_content, looks_like_text_or_code
from promptpack.utils.language import guess_language

logger = logging.getLogger(__name__)

DIRECTORY_MARKER = "📁 "
FILE_MARKER = "├─ "
BINARY_SKIPPED = "[binary content skipped]"
UNREADABLE_SKIPPED = "[unreadable content skipped]"

ERROR_PREFIX = "Error reading archive: "
MISSING_ARCHIVE = "Archive file does not exist."
EMPTY_ARCHIVE = "Archive is empty."
CANCELLED = "Indexing cancelled."

MAX_PATH_COMPONENT_LENGTH = 255


class _Readable(Protocol):
    def read(self, size: int) -> bytes:
        ...


def entry_depth(path: str) -> int:
    """Indent level of an entry: its `/` count, ignoring a trailing slash."""
    return path.rstrip("/").count("/")


class ArchiveTreeIndexer:
    """Streams a zip/jar archive into a bounded tree.

    Entries are visited in the archive's physical order. Ignored paths
    are skipped without decoding, text entries may have their content
    inlined under their header, and the run stops at the output cap or
    the entry ceiling with a closing "[truncated: ...]" footer.

    Any failure to read the archive turns the whole result into an
    "Error reading archive: <cause>" string; partial trees are discarded.
    """

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        path_filter: Optional[PathFilter] = None,
    ):
        self.config = config or IndexerConfig()
        self.path_filter = path_filter or PathFilter()

    def build(
        self,
        archive_path: Path | str,
        include_content: bool = True,
        cancel: Optional[CancellationToken] = None,
    ) -> IndexResult:
        path = Path(archive_path)
        stats = IndexStats()

        if not path.is_file():
            stats.error = "archive not found"
            return IndexResult(MISSING_ARCHIVE, stats)

        try:
            if path.stat().st_size == 0:
                return IndexResult(EMPTY_ARCHIVE, stats)
            with path.open("rb") as fileobj:
                text = self._scan(fileobj, include_content, stats, cancel)
        except IndexCancelled:
            stats.cancelled = True
            logger.info(f"Indexing of {path.name} cancelled")
            return IndexResult(CANCELLED, stats)
        except (ArchiveError, OSError, zlib.error) as exc:
            stats.error = str(exc)
            logger.warning(f"Failed to index {path.name}: {exc}")
            return IndexResult(f"{ERROR_PREFIX}{exc}", stats)

        logger.info(
            f"Indexed {path.name}: {stats.entries_included}/{stats.entries_scanned} entries"
        )
        return IndexResult(text, stats)

    def build_single(
        self,
        file_path: Path | str,
        display_name: str,
        include_content: bool = True,
        cancel: Optional[CancellationToken] = None,
    ) -> IndexResult:
        """Render a plain (non-archive) file as a one-entry tree."""
        path = Path(file_path)
        stats = IndexStats()
        acc = BoundedTextAccumulator(self.config.total_cap, self.config.per_entry_cap)

        if not path.is_file():
            stats.error = "file not found"
            return IndexResult(MISSING_ARCHIVE, stats)

        acc.append_entry_header(0, FILE_MARKER, display_name)
        stats.entries_scanned = stats.entries_included = 1
        language = guess_language(display_name)
        if language:
            stats.languages[language] = 1

        if include_content:
            try:
                with path.open("rb") as fileobj:
                    status = self._stream_body(fileobj, acc, 1, cancel, name_hint=display_name)
            except IndexCancelled:
                stats.cancelled = True
                return IndexResult(CANCELLED, stats)
            except OSError as exc:
                stats.error = str(exc)
                logger.warning(f"Failed to read {path.name}: {exc}")
                return IndexResult(f"{ERROR_PREFIX}{exc}", stats)
            if status is not AppendStatus.OK:
                stats.bytes_truncated = max(path.stat().st_size - acc.total_bytes, 0)

        self._finish(acc, stats, None)
        return IndexResult(acc.getvalue(), stats)

    def _scan(
        self,
        fileobj: BinaryIO,
        include_content: bool,
        stats: IndexStats,
        cancel: Optional[CancellationToken],
    ) -> str:
        config = self.config
        acc = BoundedTextAccumulator(config.total_cap, config.per_entry_cap)
        footer = None

        for entry in iter_entries(fileobj, config.max_uncompressed_bytes):
            if cancel is not None:
                cancel.raise_if_cancelled()

            if stats.entries_scanned >= config.max_entries:
                stats.entry_cap_reached = True
                footer = f"[truncated: entry limit of {config.max_entries} reached]"
                logger.debug(footer)
                break
            stats.entries_scanned += 1

            if not self._is_safe(entry.path) or self.path_filter.should_ignore(entry.path):
                stats.entries_ignored += 1
                continue

            self._index_entry(entry, acc, include_content, stats, cancel)

            if acc.truncated_by_total_cap:
                footer = f"[truncated: output limit of {config.total_cap} bytes reached]"
                logger.debug(footer)
                break

        self._finish(acc, stats, footer)
        return acc.getvalue()

    def _finish(
        self, acc: BoundedTextAccumulator, stats: IndexStats, footer: Optional[str]
    ) -> None:
        stats.entries_truncated = acc.entries_truncated
        stats.truncated_by_file_cap = acc.truncated_by_file_cap
        stats.truncated_by_total_cap = acc.truncated_by_total_cap
        if footer:
            acc.append_footer(footer)

    def _is_safe(self, path: str) -> bool:
        if "\x00" in path or path.startswith("/") or not path.strip("/"):
            return False
        components = path.rstrip("/").split("/")
        if len(components) > self.config.max_path_depth:
            return False
        return all(c != ".." and len(c) <= MAX_PATH_COMPONENT_LENGTH for c in components)

    def _index_entry(
        self,
        entry: ArchiveEntry,
        acc: BoundedTextAccumulator,
        include_content: bool,
        stats: IndexStats,
        cancel: Optional[CancellationToken],
    ) -> None:
        depth = entry_depth(entry.path)
        marker = DIRECTORY_MARKER if entry.is_dir else FILE_MARKER
        if not acc.append_entry_header(depth, marker, entry.name):
            return
        stats.entries_included += 1
        if entry.is_dir:
            return

        language = guess_language(entry.name)
        if language:
            stats.languages[language] = stats.languages.get(language, 0) + 1

        if not include_content or not looks_like_text_or_code(entry.name):
            return
        if not entry.readable:
            acc.append_marker(depth + 1, UNREADABLE_SKIPPED)
            return

        status = self._stream_body(entry, acc, depth + 1, cancel)
        if status is not AppendStatus.OK and entry.size is not None:
            stats.bytes_truncated += max(entry.size - entry.bytes_read, 0)

    def _stream_body(
        self,
        reader: _Readable,
        acc: BoundedTextAccumulator,
        depth: int,
        cancel: Optional[CancellationToken],
        name_hint: Optional[str] = None,
    ) -> AppendStatus:
        """Feed decoded lines to the accumulator, one window at a time.

        The incremental decoder keeps multi-byte sequences that straddle
        a window boundary intact; only genuinely invalid bytes become
        U+FFFD. An unfinished line is carried to the next window and
        dropped entirely if the entry budget cannot hold it.
        """
        window_size = self.config.window_size
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        first = True

        while True:
            window = reader.read(window_size)
            if first:
                first = False
                binary = (
                    detect_binary(name_hint, window)
                    if name_hint
                    else is_binary_content(window)
                )
                if binary:
                    acc.append_marker(depth, BINARY_SKIPPED)
                    return AppendStatus.OK

            pending += decoder.decode(window, final=not window)
            lines = pending.split("\n")
            pending = lines.pop()
            if not window and pending:
                lines.append(pending)
                pending = ""

            status = acc.append_entry_body(depth, (line.rstrip("\r") for line in lines))
            if status is not AppendStatus.OK:
                return status

            if pending and acc.entry_chars + len(pending.rstrip("\r")) + 1 > acc.per_entry_cap:
                return acc.truncate_entry(depth)

            if not window:
                return AppendStatus.OK
            if cancel is not None:
                cancel.raise_if_cancelled()
