"""Assembly of context bundles from cached or freshly built artifacts."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from promptpack.bundle.templates import INSTRUCTIONS, NO_SUMMARY
from promptpack.config import IndexerConfig
from promptpack.indexer import ArchiveTreeIndexer, CancellationToken, PathFilter, summarize
from promptpack.models import BundleConfig, IndexResult, StoredFile

logger = logging.getLogger(__name__)

_BACKTICK_RUN = re.compile(r"`{3,}")


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


@dataclass
class Bundle:
    """An assembled document plus any artifacts computed on the way.

    `fresh_tree` and `fresh_summary` are set only when the tree had to be
    built because nothing usable was cached; the caller persists them.
    `error` carries the cause when that build failed.
    """

    text: str
    fresh_tree: Optional[str] = None
    fresh_summary: Optional[str] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        return self.text


class ContextBundleAssembler:
    """Builds bundles and owns the cache-aside policy for trees.

    The cached tree is always the one built with excerpts. A bundle that
    wants the tree without excerpts builds a headers-only tree on the
    spot and never offers it for caching.
    """

    def __init__(self, config: Optional[IndexerConfig] = None):
        self.config = config or IndexerConfig()

    def indexer_for(self, file: StoredFile) -> ArchiveTreeIndexer:
        return ArchiveTreeIndexer(self.config, PathFilter.for_patterns(file.custom_ignore_patterns))

    def build_tree(
        self,
        file: StoredFile,
        include_content: bool = True,
        cancel: Optional[CancellationToken] = None,
    ) -> IndexResult:
        """Run the indexer appropriate for the file's kind."""
        indexer = self.indexer_for(file)
        if file.is_archive:
            return indexer.build(file.file_path, include_content, cancel)
        return indexer.build_single(file.file_path, file.display_name, include_content, cancel)

    def resolve_tree(
        self,
        file: StoredFile,
        include_content: bool = True,
        cached_tree: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> tuple[str, Optional[IndexResult]]:
        """Return the cached tree when usable, else build one.

        The second element is the fresh IndexResult when a build happened,
        so the caller can decide whether to persist it.
        """
        if include_content and cached_tree:
            return cached_tree, None
        logger.debug(f"Building tree for {file.display_name} (include_content={include_content})")
        result = self.build_tree(file, include_content, cancel)
        return result.text, result

    def assemble(
        self,
        file: StoredFile,
        config: BundleConfig,
        cached_tree: Optional[str] = None,
        cached_summary: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Bundle:
        bundle = Bundle(text="")
        tree = None

        if config.include_tree:
            tree, result = self.resolve_tree(file, config.include_excerpts, cached_tree, cancel)
            if result is not None:
                bundle.error = result.stats.error
                if config.include_excerpts and result.stats.ok:
                    bundle.fresh_tree = result.text
                    bundle.fresh_summary = summarize(file.display_name, result.stats)

        sections = [self._header(file)]
        if config.include_summary:
            summary = cached_summary or bundle.fresh_summary or NO_SUMMARY
            sections.append(f"## Summary\n\n{summary}")
        if tree is not None:
            sections.append(f"## Project tree\n\n{self._fenced(tree)}")
        if config.include_instructions:
            sections.append(f"## Instructions\n\n{INSTRUCTIONS}")

        bundle.text = "\n\n".join(sections) + "\n"
        return bundle

    def _header(self, file: StoredFile) -> str:
        imported = datetime.fromtimestamp(file.created_at / 1000).strftime("%Y-%m-%d %H:%M")
        lines = [
            f"# Context bundle: {file.display_name}",
            "",
            f"- Kind: {file.language or 'unknown'}",
            f"- Size: {format_size(file.size_bytes)}",
            f"- Imported: {imported}",
        ]
        return "\n".join(lines)

    @staticmethod
    def _fenced(text: str) -> str:
        # The fence must be longer than any backtick run inside the tree
        longest = max((len(m.group()) for m in _BACKTICK_RUN.finditer(text)), default=2)
        fence = "`" * (longest + 1)
        body = text if text.endswith("\n") or not text else text + "\n"
        return f"{fence}\n{body}{fence}"
