"""Forward-only reader for zip/jar archives.

Entries are parsed from their local file headers in physical order, the
way a streamed or truncated archive has to be read. The central directory
is never consulted: reaching it simply ends the stream.
"""

import logging
import struct
import zlib
from typing import BinaryIO, Iterator, Optional

from promptpack.errors import ArchiveError, ArchiveLimitError

logger = logging.getLogger(__name__)

LOCAL_HEADER_SIG = b"PK\x03\x04"
CENTRAL_DIR_SIG = b"PK\x01\x02"
END_OF_CENTRAL_DIR_SIG = b"PK\x05\x06"
ZIP64_END_SIG = b"PK\x06\x06"
DATA_DESCRIPTOR_SIG = b"PK\x07\x08"

_END_SIGNATURES = {CENTRAL_DIR_SIG, END_OF_CENTRAL_DIR_SIG, ZIP64_END_SIG}

# Local header after the signature: version, flags, method, time, date,
# crc, compressed size, uncompressed size, name length, extra length
_LOCAL_HEADER = struct.Struct("<HHHHHIIIHH")

FLAG_ENCRYPTED = 0x0001
FLAG_DATA_DESCRIPTOR = 0x0008
FLAG_UTF8 = 0x0800

STORED = 0
DEFLATED = 8
SUPPORTED_METHODS = {STORED, DEFLATED}

ZIP64_EXTRA_ID = 0x0001
ZIP32_MAX = 0xFFFFFFFF

_READ_SIZE = 64 * 1024
# Data descriptor: signature, crc and two sizes (4 bytes each, 8 for zip64)
_DESCRIPTOR_LEN = 16
_ZIP64_DESCRIPTOR_LEN = 24


class _ByteSource:
    """Buffered forward-only reader with push-back."""

    def __init__(self, fileobj: BinaryIO):
        self._fileobj = fileobj
        self._pending = b""

    def read(self, size: int) -> bytes:
        """Read up to `size` bytes; fewer only at end of data."""
        data = b""
        if self._pending:
            data = self._pending[:size]
            self._pending = self._pending[size:]
        while len(data) < size:
            chunk = self._fileobj.read(size - len(data))
            if not chunk:
                break
            data += chunk
        return data

    def read_some(self, size: int) -> bytes:
        """Read at most `size` bytes with a single underlying call."""
        if self._pending:
            data = self._pending[:size]
            self._pending = self._pending[size:]
            return data
        return self._fileobj.read(size)

    def read_exact(self, size: int) -> bytes:
        data = self.read(size)
        if len(data) < size:
            raise ArchiveError("unexpected end of archive")
        return data

    def skip(self, size: int) -> None:
        while size > 0:
            chunk = self.read_some(min(size, _READ_SIZE))
            if not chunk:
                raise ArchiveError("unexpected end of archive")
            size -= len(chunk)

    def unread(self, data: bytes) -> None:
        if data:
            self._pending = data + self._pending


class _ExpansionBudget:
    """Total decompressed bytes a single pass may produce."""

    def __init__(self, limit: Optional[int]):
        self.limit = limit
        self.used = 0

    def charge(self, size: int) -> None:
        self.used += size
        if self.limit is not None and self.used > self.limit:
            raise ArchiveLimitError(f"archive expands past {self.limit} bytes")


class ArchiveEntry:
    """One file or directory record, readable at most once, forward only.

    `size` and `compressed_size` are None when the archive defers them to
    a data descriptor; even when present they come from the archive and
    are not trusted for anything but reporting and skipping.
    """

    def __init__(
        self,
        name: str,
        flags: int,
        method: int,
        compressed_size: Optional[int],
        size: Optional[int],
        zip64: bool,
        source: _ByteSource,
        budget: _ExpansionBudget,
    ):
        self.raw_name = name
        self.path = name.replace("\\", "/")
        self.is_dir = self.path.endswith("/")
        self.flags = flags
        self.method = method
        self.compressed_size = compressed_size
        self.size = size
        self.bytes_read = 0
        self._zip64 = zip64
        self._source = source
        self._budget = budget
        self._remaining = compressed_size
        self._done = False
        self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS) if method == DEFLATED else None
        self._scan_buffer = b""
        self._scan_emitted = 0
        self._scan_end: Optional[int] = None
        self._descriptor_len = _ZIP64_DESCRIPTOR_LEN if zip64 else _DESCRIPTOR_LEN

    def __repr__(self) -> str:
        return f"ArchiveEntry({self.path!r}, size={self.size})"

    @property
    def name(self) -> str:
        """Final path component without a trailing slash."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def readable(self) -> bool:
        return self.method in SUPPORTED_METHODS and not self.encrypted

    @property
    def _sizes_known(self) -> bool:
        return self._remaining is not None

    def read(self, size: int) -> bytes:
        """Return up to `size` decompressed bytes, b"" once the entry is exhausted."""
        if self._done or size <= 0:
            return b""
        if not self.readable:
            raise ArchiveError(f"cannot read {self.path}: unsupported method {self.method}")

        if self.method == STORED:
            if self._sizes_known:
                data = self._read_stored(size)
            else:
                data = self._read_stored_scan(size)
        else:
            data = self._read_deflated(size)

        if data:
            self.bytes_read += len(data)
            self._budget.charge(len(data))
        return data

    def close(self) -> None:
        """Drain whatever is left so the stream sits on the next header."""
        if self._done:
            return
        if self._sizes_known:
            self._source.skip(self._remaining)
            self._remaining = 0
            self._done = True
            return
        if not self.readable:
            raise ArchiveError(f"cannot find the end of {self.path} without sizes")
        while self.read(_READ_SIZE):
            pass

    def _read_stored(self, size: int) -> bytes:
        count = min(size, self._remaining)
        data = self._source.read_exact(count)
        self._remaining -= count
        if self._remaining == 0:
            self._done = True
        return data

    def _read_deflated(self, size: int) -> bytes:
        decompressor = self._decompressor
        while True:
            if decompressor.eof:
                self._finish_deflated()
                return b""

            if decompressor.unconsumed_tail:
                data = decompressor.decompress(decompressor.unconsumed_tail, size)
            else:
                if self._sizes_known:
                    if self._remaining == 0:
                        raise ArchiveError(f"truncated deflate data in {self.path}")
                    raw = self._source.read_some(min(_READ_SIZE, self._remaining))
                else:
                    raw = self._source.read_some(_READ_SIZE)
                if not raw:
                    raise ArchiveError("unexpected end of archive")
                if self._sizes_known:
                    self._remaining -= len(raw)
                data = decompressor.decompress(raw, size)

            if data:
                if decompressor.eof:
                    self._finish_deflated()
                return data

    def _finish_deflated(self) -> None:
        if self._done:
            return
        leftover = self._decompressor.unused_data
        if self._sizes_known:
            self._source.skip(self._remaining)
            self._remaining = 0
        else:
            self._source.unread(leftover)
            self._read_descriptor()
        self._done = True

    def _read_descriptor(self) -> None:
        head = self._source.read_exact(4)
        size_len = 8 if self._zip64 else 4
        if head == DATA_DESCRIPTOR_SIG:
            self._source.read_exact(4 + 2 * size_len)
        else:
            self._source.read_exact(2 * size_len)

    def _read_stored_scan(self, size: int) -> bytes:
        # Stored data of unknown length ends at a descriptor whose recorded
        # size equals the number of bytes seen before it.
        while True:
            if self._scan_end is not None:
                count = min(size, self._scan_end)
                data = self._scan_buffer[:count]
                self._scan_buffer = self._scan_buffer[count:]
                self._scan_end -= count
                if self._scan_end == 0:
                    self._source.unread(self._scan_buffer[self._descriptor_len :])
                    self._scan_buffer = b""
                    self._done = True
                return data

            end = self._find_descriptor()
            if end is not None:
                self._scan_end = end
                continue

            safe = len(self._scan_buffer) - (self._descriptor_len - 1)
            if safe > 0:
                data = self._scan_buffer[: min(size, safe)]
                self._scan_buffer = self._scan_buffer[len(data) :]
                self._scan_emitted += len(data)
                return data

            raw = self._source.read_some(_READ_SIZE)
            if not raw:
                raise ArchiveError("unexpected end of archive")
            self._scan_buffer += raw

    def _find_descriptor(self) -> Optional[int]:
        buffer = self._scan_buffer
        size_format = "<QQ" if self._zip64 else "<II"
        index = buffer.find(DATA_DESCRIPTOR_SIG)
        while index != -1 and index + self._descriptor_len <= len(buffer):
            compressed, uncompressed = struct.unpack_from(size_format, buffer, index + 8)
            seen = self._scan_emitted + index
            if compressed == seen and uncompressed == seen:
                return index
            index = buffer.find(DATA_DESCRIPTOR_SIG, index + 1)
        return None


def _zip64_sizes(extra: bytes, compressed: int, size: int) -> tuple[int, int, bool]:
    """Replace 0xFFFFFFFF placeholders with sizes from the zip64 extra field."""
    offset = 0
    while offset + 4 <= len(extra):
        header_id, length = struct.unpack_from("<HH", extra, offset)
        body = extra[offset + 4 : offset + 4 + length]
        if header_id == ZIP64_EXTRA_ID:
            values = [
                struct.unpack_from("<Q", body, i)[0] for i in range(0, len(body) - 7, 8)
            ]
            if size == ZIP32_MAX and values:
                size = values.pop(0)
            if compressed == ZIP32_MAX and values:
                compressed = values.pop(0)
            return compressed, size, True
        offset += 4 + length
    return compressed, size, False


def iter_entries(
    fileobj: BinaryIO, max_uncompressed_bytes: Optional[int] = None
) -> Iterator[ArchiveEntry]:
    """Yield archive entries in physical order.

    Each entry must be consumed (or left alone) before advancing; the
    iterator drains the previous entry itself. Reading stops at the
    central directory, at the end of data, or at unrecognised data that
    follows at least one valid entry.

    Raises:
        ArchiveError: the data is not a zip archive or ends mid-entry
        ArchiveLimitError: decompressed output exceeds the budget
    """
    source = _ByteSource(fileobj)
    budget = _ExpansionBudget(max_uncompressed_bytes)
    entry: Optional[ArchiveEntry] = None
    seen_entry = False

    while True:
        if entry is not None:
            entry.close()

        signature = source.read(4)
        if signature != LOCAL_HEADER_SIG:
            if signature in _END_SIGNATURES or (seen_entry and len(signature) < 4):
                return
            if not seen_entry:
                raise ArchiveError("not a zip archive")
            logger.debug(f"Unrecognised data after entries ({signature!r}), stopping")
            return

        (
            _version,
            flags,
            method,
            _time,
            _date,
            _crc,
            compressed,
            size,
            name_len,
            extra_len,
        ) = _LOCAL_HEADER.unpack(source.read_exact(_LOCAL_HEADER.size))
        raw_name = source.read_exact(name_len)
        extra = source.read_exact(extra_len)

        compressed, size, zip64 = _zip64_sizes(extra, compressed, size)
        name = raw_name.decode("utf-8" if flags & FLAG_UTF8 else "cp437", errors="replace")

        if flags & FLAG_DATA_DESCRIPTOR:
            compressed_size, declared_size = None, None
        else:
            compressed_size, declared_size = compressed, size

        seen_entry = True
        entry = ArchiveEntry(
            name,
            flags,
            method,
            compressed_size,
            declared_size,
            zip64,
            source,
            budget,
        )
        yield entry
