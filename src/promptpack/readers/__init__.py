"""Raw file readers."""

from promptpack.readers.chunked_reader import BINARY_SENTINEL, ChunkedFileReader

__all__ = ["BINARY_SENTINEL", "ChunkedFileReader"]
