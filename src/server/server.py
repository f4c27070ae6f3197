"""Server bootstrap for the TTL cache MCP service.

Creates the FastMCP instance, builds one cache from configuration on a
server-owned asyncio scheduler, registers the cache tools and starts the
MCP server (stdio transport).
"""

import logging

from mcp.server.fastmcp import FastMCP

from caches.cache_factory import create_cache
from config import CACHE_BLOCK_WIDTH, CACHE_MAX_ENTRY_LIFE_MS, CACHE_VARIANT, LOG_LEVEL
from core.scheduler import AsyncioScheduler

from tools.put_value import register as register_put_value
from tools.get_value import register as register_get_value
from tools.remove_value import register as register_remove_value
from tools.cache_stats import register as register_cache_stats

# stdout carries the stdio transport; basicConfig logs to stderr
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

mcp = FastMCP("ttl-cache-mcp")

# Reclamation tasks run on the server's event loop
scheduler = AsyncioScheduler()

cache = create_cache(
    CACHE_VARIANT,
    max_entry_life_ms=CACHE_MAX_ENTRY_LIFE_MS,
    block_width=CACHE_BLOCK_WIDTH,
    scheduler=scheduler,
)


def register_tools() -> None:
    register_put_value(mcp, cache=cache)
    register_get_value(mcp, cache=cache)
    register_remove_value(mcp, cache=cache)
    register_cache_stats(mcp, cache=cache)


register_tools()


def main() -> None:
    logger.info(
        "Starting ttl-cache-mcp (variant=%s, max_entry_life_ms=%s, block_width=%s)",
        CACHE_VARIANT,
        CACHE_MAX_ENTRY_LIFE_MS,
        CACHE_BLOCK_WIDTH,
    )
    try:
        mcp.run(transport="stdio")
    finally:
        cache.destroy()
        scheduler.shutdown()


if __name__ == "__main__":
    main()
