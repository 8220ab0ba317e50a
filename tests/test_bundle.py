"""Tests for context bundle assembly."""

import pytest

from promptpack.bundle import Bundle, ContextBundleAssembler
from promptpack.bundle.templates import INSTRUCTIONS, NO_SUMMARY
from promptpack.models import BundleConfig, StoredFile


@pytest.fixture
def assembler() -> ContextBundleAssembler:
    return ContextBundleAssembler()


@pytest.fixture
def archive(project_zip) -> StoredFile:
    return StoredFile(
        display_name="project.zip",
        file_path=str(project_zip),
        id=1,
        language="zip",
        size_bytes=project_zip.stat().st_size,
        extension="zip",
    )


class TestSections:
    def test_all_sections_off_still_has_header(self, assembler, archive):
        config = BundleConfig(
            include_tree=False,
            include_excerpts=False,
            include_summary=False,
            include_instructions=False,
        )
        bundle = assembler.assemble(archive, config)
        assert bundle.text.startswith("# Context bundle: project.zip")
        assert "## " not in bundle.text
        assert bundle.fresh_tree is None

    def test_all_sections_in_order(self, assembler, archive):
        text = assembler.assemble(archive, BundleConfig()).text
        summary = text.index("## Summary")
        tree = text.index("## Project tree")
        instructions = text.index("## Instructions")
        assert summary < tree < instructions
        assert INSTRUCTIONS in text
        assert "- Kind: zip" in text
        assert text.endswith("\n")

    def test_excerpts_toggle_without_tree_has_no_effect(self, assembler, archive):
        with_excerpts = BundleConfig(include_tree=False, include_excerpts=True)
        without = BundleConfig(include_tree=False, include_excerpts=False)
        assert (
            assembler.assemble(archive, with_excerpts).text
            == assembler.assemble(archive, without).text
        )

    def test_placeholder_summary(self, assembler, archive):
        config = BundleConfig(include_tree=False)
        assert NO_SUMMARY in assembler.assemble(archive, config).text

    def test_cached_summary_preferred(self, assembler, archive):
        bundle = assembler.assemble(archive, BundleConfig(), cached_summary="Cached words")
        assert "Cached words" in bundle.text

    def test_str_is_text(self, assembler, archive):
        bundle = assembler.assemble(archive, BundleConfig(include_tree=False))
        assert isinstance(bundle, Bundle)
        assert str(bundle) == bundle.text


class TestTreeCaching:
    def test_fresh_build_is_offered_for_caching(self, assembler, archive):
        bundle = assembler.assemble(archive, BundleConfig())
        assert bundle.fresh_tree is not None
        assert "├─ a.kt" in bundle.fresh_tree
        assert bundle.fresh_summary.startswith("project.zip: 3 of 5 entries indexed")
        assert bundle.fresh_summary in bundle.text

    def test_cached_tree_is_used_verbatim(self, assembler, archive):
        bundle = assembler.assemble(archive, BundleConfig(), cached_tree="CACHED TREE")
        assert "CACHED TREE" in bundle.text
        assert "a.kt" not in bundle.text
        assert bundle.fresh_tree is None

    def test_headers_only_tree_is_never_cached(self, assembler, archive):
        config = BundleConfig(include_excerpts=False)
        bundle = assembler.assemble(archive, config, cached_tree="CACHED TREE")
        assert "CACHED TREE" not in bundle.text
        assert "├─ a.kt" in bundle.text
        assert "val line0" not in bundle.text
        assert bundle.fresh_tree is None

    def test_failed_build_is_not_cached(self, assembler, tmp_path):
        missing = StoredFile(
            display_name="gone.zip", file_path=str(tmp_path / "gone.zip"), id=2, language="zip"
        )
        bundle = assembler.assemble(missing, BundleConfig())
        assert bundle.fresh_tree is None
        assert bundle.error == "archive not found"
        assert "Archive file does not exist." in bundle.text

    def test_fence_outgrows_backticks_in_tree(self, assembler, archive):
        bundle = assembler.assemble(archive, BundleConfig(), cached_tree="```\ncode\n```\n")
        assert "````\n```\ncode\n```\n````" in bundle.text


class TestPlainFiles:
    def test_single_file_tree(self, assembler, tmp_path):
        path = tmp_path / "imported_Main.kt"
        path.write_text("fun main() {}\n")
        file = StoredFile(
            display_name="Main.kt", file_path=str(path), id=3, language="kotlin", extension="kt"
        )
        bundle = assembler.assemble(file, BundleConfig())
        assert "├─ Main.kt\n│   fun main() {}\n" in bundle.text
        assert bundle.fresh_tree is not None
