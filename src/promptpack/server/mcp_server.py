"""FastMCP server implementation for PromptPack."""

from mcp.server.fastmcp import FastMCP

from promptpack.bundle import format_size
from promptpack.models import BundleConfig
from promptpack.repository import FileRepository


def create_mcp_server(repo: FileRepository) -> FastMCP:
    """Create an MCP server over a file repository.

    The server only reads: it lists stored files and hands out trees,
    bundles and raw chunks. Imports and deletes stay with the CLI.

    Args:
        repo: Repository whose files are exposed

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="promptpack",
    )

    @mcp.tool()
    async def ls(query: str = "") -> str:
        """List imported files.

        Args:
            query: Optional name substring or extension to filter by (e.g. "kt")

        Returns:
            One line per file with id, name, kind and size
        """
        files = await repo.search(query) if query else await repo.list_files()

        if not files:
            return f"No files found matching '{query}'"

        lines = []
        for f in files:
            kind = f.language or "-"
            lines.append(f"{f.id:>5}  {f.display_name:<48} {kind:<10} {format_size(f.size_bytes):>10}")

        return "\n".join(lines)

    @mcp.tool()
    async def tree(file_id: int, include_content: bool = True) -> str:
        """Project tree of an imported file or archive.

        Args:
            file_id: Id as shown by ls
            include_content: Inline bounded source excerpts under each file

        Returns:
            Indented tree text, possibly ending in a "[truncated: ...]" footer
        """
        file = await repo.get(file_id)
        if file is None:
            return f"Error: File not found: {file_id}"
        return await repo.tree(file, include_content)

    @mcp.tool()
    async def bundle(
        file_id: int,
        include_tree: bool = True,
        include_excerpts: bool = True,
        include_summary: bool = True,
        include_instructions: bool = True,
    ) -> str:
        """Assemble a context bundle: header, summary, tree and task instructions.

        Args:
            file_id: Id as shown by ls
            include_tree: Add the project tree section
            include_excerpts: Inline source excerpts in the tree
            include_summary: Add the summary section
            include_instructions: Add the fixed instruction section

        Returns:
            The bundle as a markdown document
        """
        file = await repo.get(file_id)
        if file is None:
            return f"Error: File not found: {file_id}"
        config = BundleConfig(
            include_tree=include_tree,
            include_excerpts=include_excerpts,
            include_summary=include_summary,
            include_instructions=include_instructions,
        )
        return await repo.bundle(file, config)

    @mcp.tool()
    async def read(file_id: int, offset: int = 0, size: int = 32 * 1024) -> str:
        """Read a window of a stored file's raw content.

        Args:
            file_id: Id as shown by ls
            offset: Byte offset to start from
            size: Number of bytes to read

        Returns:
            Decoded text followed by the offset to continue from, or an end marker
        """
        file = await repo.get(file_id)
        if file is None:
            return f"Error: File not found: {file_id}"
        if offset < 0 or size <= 0:
            return "Error: offset must be >= 0 and size > 0"

        result = await repo.read_chunk(file, offset, size)
        trailer = "[end of file]" if result.at_end else f"[next offset: {result.next_offset}]"
        return f"{result.text}\n{trailer}"

    return mcp
