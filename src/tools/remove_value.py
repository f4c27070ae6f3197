"""MCP tool that removes a key from the cache."""

from __future__ import annotations

from typing import Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.interfaces import KeyedCache


def register(mcp: FastMCP, *, cache: KeyedCache) -> None:
    @mcp.tool(name="cache_remove")
    async def cache_remove(key: str) -> Optional[str]:
        """Remove key and return its value if it had not yet expired.

        Returns None when the key was missing or its value had expired.
        """
        k = (key or "").strip()
        if not k:
            raise ValidationError("Missing cache key")

        return cache.remove(k)
