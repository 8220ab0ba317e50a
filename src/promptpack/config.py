"""Tunable limits and on-disk locations."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class IndexerConfig:
    """Caps applied to every archive scan.

    total_cap is measured in UTF-8 bytes of tree output, per_entry_cap in
    characters of inlined content for a single entry.
    """

    total_cap: int = 120_000
    per_entry_cap: int = 4_000
    max_entries: int = 5_000
    window_size: int = 8 * 1024
    max_path_depth: int = 50
    max_uncompressed_bytes: int = 500 * 1024 * 1024


@dataclass(frozen=True)
class ReaderConfig:
    preview_chunk_size: int = 32 * 1024


@dataclass(frozen=True)
class AppPaths:
    """Private storage layout under a single home directory."""

    home: Path

    @classmethod
    def default(cls) -> "AppPaths":
        return cls(Path.home() / ".promptpack")

    @property
    def database(self) -> Path:
        return self.home / "promptpack.db"

    @property
    def files_dir(self) -> Path:
        return self.home / "files"

    def ensure(self) -> None:
        self.files_dir.mkdir(parents=True, exist_ok=True)
