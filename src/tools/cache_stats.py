"""MCP tool reporting cache diagnostics.

Registers 'cache_stats' which returns a snapshot of the cache: stored
entries (expired-but-unreclaimed ones included), indexed and live keys,
outstanding reclamation tasks and, for the block cache, each live block.
"""

from __future__ import annotations

from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from core.interfaces import KeyedCache


def register(mcp: FastMCP, *, cache: KeyedCache) -> None:
    @mcp.tool(name="cache_stats")
    async def cache_stats() -> Dict[str, Any]:
        """Return a point-in-time snapshot of the cache as a dict."""
        return cache.snapshot().to_dict()
