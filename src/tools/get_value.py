"""MCP tool that reads a value from the cache."""

from __future__ import annotations

from typing import Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.interfaces import KeyedCache


def register(mcp: FastMCP, *, cache: KeyedCache) -> None:
    @mcp.tool(name="cache_get")
    async def cache_get(key: str) -> Optional[str]:
        """Return the value stored under key, or None if missing or expired."""
        k = (key or "").strip()
        if not k:
            raise ValidationError("Missing cache key")

        return cache.get(k)
