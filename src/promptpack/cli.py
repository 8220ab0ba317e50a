"""CLI entry point for PromptPack."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from promptpack.bundle import format_size
from promptpack.config import AppPaths, IndexerConfig
from promptpack.errors import PromptPackError
from promptpack.models import BundleConfig, StoredFile
from promptpack.repository import FileRepository

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def _format_time(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M")


def _print_files(files: list[StoredFile]) -> None:
    if not files:
        print("No files.")
        return
    for f in files:
        star = "*" if f.is_favorite else " "
        kind = f.language or "-"
        print(f"{star}{f.id:>5}  {f.display_name:<48} {kind:<12} {format_size(f.size_bytes):>10}")


async def _require(repo: FileRepository, file_id: int) -> StoredFile:
    file = await repo.get(file_id)
    if file is None:
        logger.error(f"No file with id {file_id}")
        sys.exit(1)
    return file


async def import_file(repo: FileRepository, source: str, name: Optional[str]) -> None:
    """Import a file or archive into private storage.

    Args:
        repo: Repository to import into
        source: Path or file:// URI of the file to import
        name: Optional display name overriding the source's own name
    """
    try:
        file_id = await repo.import_file(source, name)
    except (PromptPackError, OSError) as exc:
        logger.error(f"Cannot import: {source} ({exc})")
        sys.exit(1)
    print(file_id)


async def list_files(repo: FileRepository, query: Optional[str]) -> None:
    files = await repo.search(query) if query else await repo.list_files()
    _print_files(files)


async def tree(repo: FileRepository, file_id: int, include_content: bool, refresh: bool) -> None:
    """Print the project tree of a stored file.

    Args:
        repo: Repository holding the file
        file_id: Id of the stored file
        include_content: Inline source excerpts under each file
        refresh: Rebuild even if a cached tree exists
    """
    file = await _require(repo, file_id)
    if refresh:
        result = await repo.build_tree(file, include_content)
        print(result.text, end="")
    else:
        print(await repo.tree(file, include_content), end="")


async def bundle(repo: FileRepository, file_id: int, config: BundleConfig, output: Optional[str]) -> None:
    file = await _require(repo, file_id)
    text = await repo.bundle(file, config)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info(f"Bundle for {file.display_name} -> {output}")
    else:
        print(text, end="")


async def read(repo: FileRepository, file_id: int, offset: int, size: int) -> None:
    file = await _require(repo, file_id)
    try:
        result = await repo.read_chunk(file, offset, size)
    except ValueError as exc:
        logger.error(str(exc))
        sys.exit(1)
    print(result.text, end="" if result.text.endswith("\n") else "\n")
    if result.at_end:
        logger.info("[end of file]")
    else:
        logger.info(f"[next offset: {result.next_offset}]")


async def info(repo: FileRepository, file_id: int) -> None:
    """Show information about a stored file."""
    file = await _require(repo, file_id)

    print(f"File: {file.display_name}")
    print(f"  Id: {file.id}")
    print(f"  Path: {file.file_path}")
    print(f"  Kind: {file.language or 'unknown'}")
    print(f"  Size: {format_size(file.size_bytes)}")
    print(f"  Imported: {_format_time(file.created_at)}")
    print(f"  Last opened: {_format_time(file.last_accessed_at)}")
    print(f"  Favorite: {'yes' if file.is_favorite else 'no'}")
    print(f"  Cached tree: {'yes' if file.last_known_tree else 'no'}")
    if file.summary:
        print()
        print(file.summary)


async def remove(repo: FileRepository, file_id: int) -> None:
    file = await _require(repo, file_id)
    if not await repo.delete(file):
        logger.error(f"Failed to delete {file.display_name}")
        sys.exit(1)
    logger.info(f"Deleted {file.display_name}")


async def favorite(repo: FileRepository, file_id: int, value: bool) -> None:
    file = await _require(repo, file_id)
    await repo.set_favorite(file, value)


def serve(repo: FileRepository, transport: str = "stdio") -> None:
    """Start the MCP server over the file store.

    Args:
        repo: Repository to expose
        transport: Transport protocol (stdio or sse)
    """
    # Import here to avoid loading MCP unless needed
    from typing import Literal, cast

    from promptpack.server import create_mcp_server

    logger.info(f"Serving {repo.files_dir.parent} via {transport}")
    mcp = create_mcp_server(repo)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], transport))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptpack",
        description="PromptPack - project trees and context bundles from files and archives",
    )
    parser.add_argument(
        "--home",
        default=None,
        help="Data directory (default: ~/.promptpack)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # import command
    import_parser = subparsers.add_parser("import", help="Import a file or zip/jar archive")
    import_parser.add_argument("source", help="Path or file:// URI to import")
    import_parser.add_argument("--name", default=None, help="Display name override")

    # ls / search commands
    subparsers.add_parser("ls", help="List imported files")
    search_parser = subparsers.add_parser("search", help="Search by name or extension")
    search_parser.add_argument("query")

    # tree command
    tree_parser = subparsers.add_parser("tree", help="Print the project tree of a file")
    tree_parser.add_argument("id", type=int)
    tree_parser.add_argument(
        "--no-content", action="store_true", help="Headers only, no source excerpts"
    )
    tree_parser.add_argument("--refresh", action="store_true", help="Ignore the cached tree")
    tree_parser.add_argument("--max-entries", type=int, default=None)
    tree_parser.add_argument("--per-entry-cap", type=int, default=None)
    tree_parser.add_argument("--total-cap", type=int, default=None)

    # bundle command
    bundle_parser = subparsers.add_parser("bundle", help="Assemble a context bundle")
    bundle_parser.add_argument("id", type=int)
    bundle_parser.add_argument("--no-tree", action="store_true")
    bundle_parser.add_argument("--no-excerpts", action="store_true")
    bundle_parser.add_argument("--no-summary", action="store_true")
    bundle_parser.add_argument("--no-instructions", action="store_true")
    bundle_parser.add_argument("-o", "--output", default=None, help="Write to file instead of stdout")

    # read command
    read_parser = subparsers.add_parser("read", help="Read a chunk of a stored file")
    read_parser.add_argument("id", type=int)
    read_parser.add_argument("--offset", type=int, default=0)
    read_parser.add_argument("--size", type=int, default=32 * 1024)

    # info / rm / fav commands
    info_parser = subparsers.add_parser("info", help="Show information about a file")
    info_parser.add_argument("id", type=int)
    rm_parser = subparsers.add_parser("rm", help="Delete a file and its stored bytes")
    rm_parser.add_argument("id", type=int)
    fav_parser = subparsers.add_parser("fav", help="Mark a file as favorite")
    fav_parser.add_argument("id", type=int)
    fav_parser.add_argument("--off", action="store_true", help="Remove the favorite mark")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server over the file store")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    return parser


def _indexer_config(args: argparse.Namespace) -> IndexerConfig:
    overrides = {
        key: getattr(args, key, None)
        for key in ("max_entries", "per_entry_cap", "total_cap")
        if getattr(args, key, None) is not None
    }
    return IndexerConfig(**overrides)


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    paths = AppPaths(Path(args.home).expanduser()) if args.home else AppPaths.default()
    repo = FileRepository.open(paths, _indexer_config(args))

    if args.command == "import":
        asyncio.run(import_file(repo, args.source, args.name))
    elif args.command == "ls":
        asyncio.run(list_files(repo, None))
    elif args.command == "search":
        asyncio.run(list_files(repo, args.query))
    elif args.command == "tree":
        asyncio.run(tree(repo, args.id, not args.no_content, args.refresh))
    elif args.command == "bundle":
        config = BundleConfig(
            include_tree=not args.no_tree,
            include_excerpts=not args.no_excerpts,
            include_summary=not args.no_summary,
            include_instructions=not args.no_instructions,
        )
        asyncio.run(bundle(repo, args.id, config, args.output))
    elif args.command == "read":
        asyncio.run(read(repo, args.id, args.offset, args.size))
    elif args.command == "info":
        asyncio.run(info(repo, args.id))
    elif args.command == "rm":
        asyncio.run(remove(repo, args.id))
    elif args.command == "fav":
        asyncio.run(favorite(repo, args.id, not args.off))
    elif args.command == "serve":
        serve(repo, args.transport)


if __name__ == "__main__":
    main()
