"""Async facade tying storage, indexing, bundling and reads together.

All blocking work runs on worker threads via asyncio.to_thread. Indexing
is serialized per file id, and identical concurrent tree builds share a
single run. Failures are published on `errors` and logged; only import
failures are re-raised, since the caller is waiting for an id.
"""

import asyncio
import logging
import re
import shutil
import sqlite3
from pathlib import Path
from typing import Callable, Optional, TypeVar

from promptpack.bundle import ContextBundleAssembler
from promptpack.config import AppPaths, IndexerConfig, ReaderConfig
from promptpack.errors import ArchiveError, ImportFailed, RepoError
from promptpack.indexer import CancellationToken, summarize
from promptpack.models import (
    END_OF_FILE,
    BundleConfig,
    ChunkResult,
    IndexResult,
    StoredFile,
    now_millis,
)
from promptpack.protocols import ArtifactCache
from promptpack.readers import ChunkedFileReader
from promptpack.sources import get_source
from promptpack.storage import FileStore
from promptpack.utils.language import detect_kind, file_extension

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
ERROR_QUEUE_SIZE = 8


def safe_file_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


class FileRepository:
    """Entry point used by presentation layers (CLI, MCP server)."""

    def __init__(
        self,
        store: ArtifactCache,
        files_dir: Path | str,
        indexer_config: Optional[IndexerConfig] = None,
        reader_config: Optional[ReaderConfig] = None,
    ):
        self.store = store
        self.files_dir = Path(files_dir)
        self.assembler = ContextBundleAssembler(indexer_config)
        # Cached trees are only meaningful for the default limits
        self.uses_cache = self.assembler.config == IndexerConfig()
        self.reader = ChunkedFileReader()
        self.reader_config = reader_config or ReaderConfig()
        self.errors: asyncio.Queue[RepoError] = asyncio.Queue(maxsize=ERROR_QUEUE_SIZE)
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}
        self._tokens: dict[int, CancellationToken] = {}
        self._in_flight: dict[tuple[int, bool], asyncio.Future] = {}

    @classmethod
    def open(
        cls, paths: Optional[AppPaths] = None, indexer_config: Optional[IndexerConfig] = None
    ) -> "FileRepository":
        """Create a repository over the sqlite store in `paths`."""
        paths = paths or AppPaths.default()
        paths.ensure()
        store = FileStore(paths.database)
        store.initialize()
        return cls(store, paths.files_dir, indexer_config)

    # Error channel

    def _report(self, source: str, message: str, exc: Optional[BaseException] = None) -> None:
        error = RepoError(source=source, message=message, exception=exc)
        logger.warning(error.describe())
        try:
            self.errors.put_nowait(error)
        except asyncio.QueueFull:
            logger.debug(f"Error queue full, dropped report from {source}")

    # Import / listing

    async def import_file(self, locator: str, display_name: Optional[str] = None) -> int:
        """Copy an external file into private storage and record it.

        Returns:
            The id of the stored file (the existing id on re-import)
        """
        try:
            return await asyncio.to_thread(self._import_sync, locator, display_name)
        except Exception as exc:
            self._report("import_file", "Failed to import file", exc)
            raise

    def _import_sync(self, locator: str, display_name: Optional[str]) -> int:
        source = get_source(locator)
        if source is None:
            raise ImportFailed(f"Cannot open locator: {locator}")

        name_hint = display_name or source.suggested_name(locator) or f"file_{now_millis()}"
        safe_name = safe_file_name(name_hint)
        self.files_dir.mkdir(parents=True, exist_ok=True)
        target = self.files_dir / f"imported_{safe_name}"
        partial = target.with_name(target.name + ".part")

        try:
            with source.open(locator) as src, partial.open("wb") as out:
                shutil.copyfileobj(src, out)
            partial.replace(target)
        finally:
            partial.unlink(missing_ok=True)

        file = StoredFile(
            display_name=name_hint,
            file_path=str(target.resolve()),
            language=detect_kind(safe_name),
            size_bytes=target.stat().st_size,
            extension=file_extension(safe_name),
        )
        file_id = self.store.upsert(file)
        logger.info(f"Imported {name_hint} as #{file_id} ({file.language or 'unknown'})")
        return file_id

    async def get(self, file_id: int) -> Optional[StoredFile]:
        return await asyncio.to_thread(self.store.get_by_id, file_id)

    async def list_files(self) -> list[StoredFile]:
        return await asyncio.to_thread(self.store.list_files)

    async def search(self, query: str) -> list[StoredFile]:
        return await asyncio.to_thread(self.store.search, query)

    async def set_favorite(self, file: StoredFile, favorite: bool) -> None:
        await asyncio.to_thread(self.store.set_favorite, file.id, favorite)

    async def set_archived(self, file: StoredFile, archived: bool) -> None:
        await asyncio.to_thread(self.store.set_archived, file.id, archived)

    async def delete(self, file: StoredFile) -> bool:
        """Delete the record, then its bytes on a best-effort basis.

        Returns:
            True if the record was deleted, whatever happened to the bytes
        """
        try:
            await asyncio.to_thread(self.store.delete, file.id)
        except sqlite3.Error as exc:
            self._report("delete", "Failed to delete file", exc)
            return False

        try:
            await asyncio.to_thread(_remove_path, Path(file.file_path))
        except OSError as exc:
            self._report("delete", "Failed to remove stored bytes", exc)
        return True

    # Raw reads

    async def read_chunk(self, file: StoredFile, offset: int, chunk_size: int) -> ChunkResult:
        try:
            return await asyncio.to_thread(
                self.reader.read_chunk, file.file_path, offset, chunk_size
            )
        except OSError as exc:
            self._report("read_chunk", "Failed to read file chunk", exc)
            return ChunkResult("", END_OF_FILE)

    async def preview(self, file: StoredFile) -> str:
        await self._touch(file)
        result = await self.read_chunk(file, 0, self.reader_config.preview_chunk_size)
        return result.text

    # Trees and bundles

    def cancel_indexing(self, file_id: int) -> bool:
        """Cancel the scan currently running for a file, if any."""
        token = self._tokens.get(file_id)
        if token is None:
            return False
        token.cancel()
        return True

    async def build_tree(self, file: StoredFile, include_content: bool = True) -> IndexResult:
        """Always rebuild; concurrent identical requests share one run.

        The result replaces the cached tree only under the default limits.
        """
        key = (file.id, include_content)
        future = self._in_flight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._build_and_store(file, include_content))
            self._in_flight[key] = future
            future.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await asyncio.shield(future)

    async def _build_and_store(self, file: StoredFile, include_content: bool) -> IndexResult:
        result = await self._in_index_slot(
            file.id, lambda token: self.assembler.build_tree(file, include_content, token)
        )
        await self._after_index(file, result, include_content)
        return result

    async def tree(self, file: StoredFile, include_content: bool = True) -> str:
        """Cached tree when available, otherwise built and stored.

        With non-default limits the cache is neither read nor written.
        """
        file = await self._refresh(file)
        await self._touch(file)
        cached_tree = file.last_known_tree if self.uses_cache else None
        text, result = await self._in_index_slot(
            file.id,
            lambda token: self.assembler.resolve_tree(file, include_content, cached_tree, token),
        )
        if result is not None:
            await self._after_index(file, result, include_content)
        return text

    async def bundle(self, file: StoredFile, config: Optional[BundleConfig] = None) -> str:
        file = await self._refresh(file)
        await self._touch(file)
        if self.uses_cache:
            cached_tree, cached_summary = file.last_known_tree, file.summary
        else:
            cached_tree = cached_summary = None
        bundle = await self._in_index_slot(
            file.id,
            lambda token: self.assembler.assemble(
                file, config or BundleConfig(), cached_tree, cached_summary, token
            ),
        )
        if bundle.error is not None:
            self._report("bundle", "Failed to read archive contents", ArchiveError(bundle.error))
        if bundle.fresh_tree is not None and self.uses_cache:
            await self._store_artifacts(file, bundle.fresh_tree, bundle.fresh_summary or "")
        return bundle.text

    async def _in_index_slot(self, file_id: int, work: Callable[[CancellationToken], T]) -> T:
        lock = self._locks.setdefault(file_id, asyncio.Lock())
        self._lock_users[file_id] = self._lock_users.get(file_id, 0) + 1
        token = CancellationToken()
        try:
            async with lock:
                self._tokens[file_id] = token
                try:
                    return await asyncio.to_thread(work, token)
                finally:
                    self._tokens.pop(file_id, None)
        finally:
            self._lock_users[file_id] -= 1
            if not self._lock_users[file_id]:
                del self._lock_users[file_id]
                del self._locks[file_id]

    async def _after_index(self, file: StoredFile, result: IndexResult, include_content: bool) -> None:
        if result.stats.error is not None:
            self._report(
                "build_tree", "Failed to read archive contents", ArchiveError(result.stats.error)
            )
        elif include_content and result.stats.ok and self.uses_cache:
            await self._store_artifacts(
                file, result.text, summarize(file.display_name, result.stats)
            )

    async def _store_artifacts(self, file: StoredFile, tree: str, summary: str) -> None:
        try:
            await asyncio.to_thread(self.store.update_metadata_index, file.id, tree, summary)
        except sqlite3.Error as exc:
            self._report("update_tree", "Failed to cache tree", exc)

    async def _refresh(self, file: StoredFile) -> StoredFile:
        current = await self.get(file.id)
        return current or file

    async def _touch(self, file: StoredFile) -> None:
        try:
            await asyncio.to_thread(self.store.update_last_accessed, file.id)
        except sqlite3.Error as exc:
            self._report("update_last_accessed", "Failed to update access time", exc)


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)
