"""Tests for the async repository facade."""

import asyncio
import threading
import time
from pathlib import Path

import pytest

from promptpack.config import IndexerConfig
from promptpack.errors import ImportFailed
from promptpack.indexer.tree import CANCELLED, MISSING_ARCHIVE
from promptpack.models import BundleConfig, IndexResult, IndexStats
from promptpack.repository import ERROR_QUEUE_SIZE, FileRepository, safe_file_name


def drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class TestImport:
    """Copying external files into private storage."""

    @pytest.mark.asyncio
    async def test_import_archive(self, repo, project_zip):
        file_id = await repo.import_file(str(project_zip))
        file = await repo.get(file_id)

        assert file.display_name == "project.zip"
        assert file.language == "zip"
        assert file.extension == "zip"
        assert file.size_bytes == project_zip.stat().st_size
        stored = Path(file.file_path)
        assert stored.name == "imported_project.zip"
        assert stored.parent == repo.files_dir.resolve()
        assert stored.read_bytes() == project_zip.read_bytes()

    @pytest.mark.asyncio
    async def test_reimport_keeps_id(self, repo, project_zip):
        first = await repo.import_file(str(project_zip))
        second = await repo.import_file(project_zip.as_uri())
        assert first == second
        assert len(await repo.list_files()) == 1

    @pytest.mark.asyncio
    async def test_display_name_is_sanitized_for_storage(self, repo, tmp_path):
        source = tmp_path / "src.txt"
        source.write_text("hello\n")
        file_id = await repo.import_file(str(source), "My Notes (v2).md")
        file = await repo.get(file_id)
        assert file.display_name == "My Notes (v2).md"
        assert Path(file.file_path).name == "imported_My_Notes__v2_.md"
        assert file.language == "markdown"

    @pytest.mark.asyncio
    async def test_unknown_locator_reports_and_raises(self, repo, tmp_path):
        with pytest.raises(ImportFailed):
            await repo.import_file(str(tmp_path / "missing.zip"))
        errors = drain(repo.errors)
        assert [e.source for e in errors] == ["import_file"]
        assert list(repo.files_dir.iterdir()) == []

    def test_safe_file_name(self):
        assert safe_file_name("a b/c:d.zip") == "a_b_c_d.zip"
        assert safe_file_name("ok-name_1.jar") == "ok-name_1.jar"


class TestTrees:
    @pytest.mark.asyncio
    async def test_tree_is_built_then_cached(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        text = await repo.tree(file)
        assert "├─ a.kt" in text

        stored = await repo.get(file.id)
        assert stored.last_known_tree == text
        assert stored.summary.startswith("project.zip: 3 of 5 entries indexed")

        repo.store.update_tree(file.id, "CACHED")
        assert await repo.tree(file) == "CACHED"

    @pytest.mark.asyncio
    async def test_headers_only_tree_is_not_cached(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        text = await repo.tree(file, include_content=False)
        assert "val line0" not in text
        assert (await repo.get(file.id)).last_known_tree is None

    @pytest.mark.asyncio
    async def test_build_tree_refreshes_cache(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        repo.store.update_tree(file.id, "STALE")
        result = await repo.build_tree(file)
        assert result.stats.ok
        assert (await repo.get(file.id)).last_known_tree == result.text

    @pytest.mark.asyncio
    async def test_concurrent_builds_share_one_run(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        first, second = await asyncio.gather(repo.build_tree(file), repo.build_tree(file))
        assert first is second

    @pytest.mark.asyncio
    async def test_missing_bytes_reported_and_not_cached(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        Path(file.file_path).unlink()
        assert await repo.tree(file) == MISSING_ARCHIVE
        assert (await repo.get(file.id)).last_known_tree is None
        assert [e.source for e in drain(repo.errors)] == ["build_tree"]

    @pytest.mark.asyncio
    async def test_cancel_running_scan(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        started = threading.Event()

        def slow_build(f, include_content, token):
            started.set()
            while not token.cancelled:
                time.sleep(0.01)
            return IndexResult(CANCELLED, IndexStats(cancelled=True))

        repo.assembler.build_tree = slow_build
        task = asyncio.create_task(repo.build_tree(file))
        assert await asyncio.to_thread(started.wait, 5)
        assert repo.cancel_indexing(file.id)

        result = await task
        assert result.text == CANCELLED
        assert (await repo.get(file.id)).last_known_tree is None
        assert drain(repo.errors) == []

    def test_cancel_without_running_scan(self, repo):
        assert not repo.cancel_indexing(42)

    @pytest.mark.asyncio
    async def test_index_locks_released_after_use(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        await asyncio.gather(repo.tree(file), repo.bundle(file), repo.build_tree(file, False))
        assert repo._locks == {}
        assert repo._lock_users == {}


class TestCustomLimits:
    """Non-default limits bypass the tree cache."""

    @pytest.mark.asyncio
    async def test_custom_limits_neither_read_nor_write_cache(self, paths, project_zip):
        default_repo = FileRepository.open(paths)
        file = await default_repo.get(await default_repo.import_file(str(project_zip)))
        full = await default_repo.tree(file)

        capped_repo = FileRepository.open(paths, IndexerConfig(max_entries=1))
        assert not capped_repo.uses_cache
        capped = await capped_repo.tree(file)
        assert capped.endswith("[truncated: entry limit of 1 reached]\n")
        rebuilt = await capped_repo.build_tree(file)
        assert rebuilt.stats.entry_cap_reached
        bundle = await capped_repo.bundle(file)
        assert "Entry limit reached" in bundle

        stored = await default_repo.get(file.id)
        assert stored.last_known_tree == full
        assert "Entry limit reached" not in stored.summary

    def test_default_limits_use_cache(self, repo):
        assert repo.uses_cache


class TestBundles:
    @pytest.mark.asyncio
    async def test_bundle_persists_fresh_tree(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        text = await repo.bundle(file)
        stored = await repo.get(file.id)
        assert stored.last_known_tree is not None
        assert stored.last_known_tree in text
        assert stored.summary in text

    @pytest.mark.asyncio
    async def test_bundle_without_tree_leaves_cache_alone(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        text = await repo.bundle(file, BundleConfig(include_tree=False))
        assert "No summary available yet." in text
        assert (await repo.get(file.id)).last_known_tree is None


class TestReadsAndDeletes:
    @pytest.mark.asyncio
    async def test_preview_and_chunks(self, repo, tmp_path):
        source = tmp_path / "notes.md"
        source.write_text("0123456789")
        file = await repo.get(await repo.import_file(str(source)))

        assert await repo.preview(file) == "0123456789"
        chunk = await repo.read_chunk(file, 4, 3)
        assert (chunk.text, chunk.next_offset) == ("456", 7)

    @pytest.mark.asyncio
    async def test_invalid_read_raises(self, repo, tmp_path):
        source = tmp_path / "notes.md"
        source.write_text("abc")
        file = await repo.get(await repo.import_file(str(source)))
        with pytest.raises(ValueError):
            await repo.read_chunk(file, -1, 3)

    @pytest.mark.asyncio
    async def test_favorites_and_archiving(self, repo, tmp_path):
        ids = []
        for name in ("a.md", "b.md"):
            source = tmp_path / name
            source.write_text(name)
            ids.append(await repo.import_file(str(source)))
        a, b = [await repo.get(i) for i in ids]

        await repo.set_favorite(b, True)
        assert [f.id for f in await repo.list_files()][0] == b.id
        await repo.set_archived(b, True)
        assert [f.id for f in await repo.list_files()] == [a.id]

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_bytes(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        assert await repo.delete(file)
        assert await repo.get(file.id) is None
        assert not Path(file.file_path).exists()

    @pytest.mark.asyncio
    async def test_delete_with_bytes_already_gone(self, repo, project_zip):
        file = await repo.get(await repo.import_file(str(project_zip)))
        Path(file.file_path).unlink()
        assert await repo.delete(file)
        assert drain(repo.errors) == []


class TestErrorChannel:
    @pytest.mark.asyncio
    async def test_queue_drops_reports_when_full(self, repo, tmp_path):
        for i in range(ERROR_QUEUE_SIZE + 3):
            with pytest.raises(ImportFailed):
                await repo.import_file(str(tmp_path / f"missing{i}.zip"))
        assert repo.errors.qsize() == ERROR_QUEUE_SIZE
