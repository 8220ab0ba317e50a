"""Shared fixtures: archive builders and a repository over a temp home."""

import io
import zipfile
from pathlib import Path
from typing import Callable, Union

import pytest

from promptpack.config import AppPaths, IndexerConfig
from promptpack.repository import FileRepository
from promptpack.storage import FileStore

Content = Union[str, bytes]


class UnseekableWriter:
    """Write-only sink that makes zipfile emit data-descriptor entries."""

    def __init__(self) -> None:
        self.buffer = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self.buffer.write(data)

    def flush(self) -> None:
        pass

    def tell(self) -> int:
        raise OSError("not seekable")

    def seek(self, *args) -> int:
        raise OSError("not seekable")


def _write_entries(
    zf: zipfile.ZipFile, entries: dict[str, Content], compression: int, zip64: bool = False
) -> None:
    for name, content in entries.items():
        data = content.encode("utf-8") if isinstance(content, str) else content
        info = zipfile.ZipInfo(name)
        info.compress_type = zipfile.ZIP_STORED if name.endswith("/") else compression
        if zip64:
            with zf.open(info, "w", force_zip64=True) as dest:
                dest.write(data)
        else:
            zf.writestr(info, data)


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """Build a zip on disk from {name: content}, in insertion order.

    streamed=True writes through a non-seekable sink, so every entry
    defers its sizes to a data descriptor. zip64=True forces zip64
    headers (and zip64 descriptors when streamed).
    """

    def build(
        entries: dict[str, Content],
        name: str = "archive.zip",
        compression: int = zipfile.ZIP_DEFLATED,
        streamed: bool = False,
        zip64: bool = False,
    ) -> Path:
        path = tmp_path / name
        if streamed:
            sink = UnseekableWriter()
            with zipfile.ZipFile(sink, "w") as zf:
                _write_entries(zf, entries, compression, zip64)
            path.write_bytes(sink.buffer.getvalue())
        else:
            with zipfile.ZipFile(path, "w") as zf:
                _write_entries(zf, entries, compression, zip64)
        return path

    return build


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    store = FileStore(tmp_path / "home" / "promptpack.db")
    store.initialize()
    return store


@pytest.fixture
def paths(tmp_path: Path) -> AppPaths:
    return AppPaths(tmp_path / "home")


@pytest.fixture
def repo(paths: AppPaths) -> FileRepository:
    return FileRepository.open(paths, IndexerConfig())


@pytest.fixture
def project_zip(make_zip) -> Path:
    """The canonical mixed archive: source, ignored dirs, a readme."""
    kotlin = "".join(f"val line{i} = {i}\n" for i in range(50))
    return make_zip(
        {
            "src/": b"",
            "src/a.kt": kotlin,
            "node_modules/x.js": "module.exports = 1;\n",
            ".git/config": "[core]\n\tbare = false\n",
            "README.md": "# Demo\n\nHello.\n",
        },
        name="project.zip",
    )
