"""MCP server exposing stored files."""

from promptpack.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
