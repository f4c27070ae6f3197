"""MCP tool that stores a value in the cache with a lifetime.

Registers the 'cache_put' tool which validates inputs and reports
whether the cache accepted the entry.
"""

from __future__ import annotations

from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from config import MAX_VALUE_CHARS
from core.errors import ValidationError
from core.interfaces import KeyedCache


def register(mcp: FastMCP, *, cache: KeyedCache) -> None:
    @mcp.tool(name="cache_put")
    async def cache_put(key: str, value: str, lifetime_ms: int) -> Dict[str, Any]:
        """Store a text value under a key for lifetime_ms milliseconds.

        Params:
          - key: cache key (required, non-empty).
          - value: text to store (at most MAX_VALUE_CHARS characters).
          - lifetime_ms: how long the value stays readable.

        Returns:
          {"stored": bool, "key": str, "lifetime_ms": int}. stored is False
          when the lifetime is outside the range the cache accepts.

        Raises:
          ValidationError for an empty key or an oversized value.
        """
        k = (key or "").strip()
        if not k:
            raise ValidationError("Missing cache key")

        if len(value or "") > MAX_VALUE_CHARS:
            raise ValidationError(f"Value exceeds {MAX_VALUE_CHARS} characters")

        stored = cache.add(k, value or "", int(lifetime_ms))
        return {"stored": stored, "key": k, "lifetime_ms": int(lifetime_ms)}
