"""Offset-based, fixed-window reads of stored files."""

from pathlib import Path

from promptpack.models import END_OF_FILE, ChunkResult
from promptpack.utils.binary import is_binary_content

BINARY_SENTINEL = "[Binary content - preview disabled]"


class ChunkedFileReader:
    """Random-access reader that decodes each window independently.

    Stateless: every call opens its own handle and allocates its own
    buffer, so concurrent reads of different files or different offsets
    of the same file are safe.

    Windows are cut at exact byte offsets. A window that starts or ends
    inside a multi-byte UTF-8 sequence decodes that partial sequence as
    U+FFFD, so concatenating chunks reproduces the file exactly only
    when chunk boundaries fall between characters (always true for ASCII).
    """

    def read_chunk(self, path: Path | str, offset: int, chunk_size: int) -> ChunkResult:
        """Read `chunk_size` bytes starting at `offset`.

        Args:
            path: Stored file to read
            offset: Byte offset, must be >= 0
            chunk_size: Window size in bytes, must be > 0

        Returns:
            The decoded text (or BINARY_SENTINEL) and the offset to continue
            from, END_OF_FILE once the read reached the end. Missing or
            empty files, and offsets at or past the end, give ("", END_OF_FILE).

        Raises:
            ValueError: on a negative offset or non-positive chunk size
            OSError: if an existing file cannot be read
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

        path = Path(path)
        if not path.is_file():
            return ChunkResult("", END_OF_FILE)

        length = path.stat().st_size
        if length == 0 or offset >= length:
            return ChunkResult("", END_OF_FILE)

        with path.open("rb") as f:
            f.seek(offset)
            data = f.read(min(chunk_size, length - offset))

        if not data:
            return ChunkResult("", END_OF_FILE)

        next_offset = offset + len(data)
        if next_offset >= length:
            next_offset = END_OF_FILE

        if is_binary_content(data):
            return ChunkResult(BINARY_SENTINEL, next_offset)
        return ChunkResult(data.decode("utf-8", errors="replace"), next_offset)
