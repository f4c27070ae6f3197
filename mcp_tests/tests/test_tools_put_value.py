import pytest

from caches.block_cache import TimedBlockCache
from core.errors import ValidationError
from tools import put_value as put_value_tool


@pytest.fixture
def cache(clock, scheduler):
    c = TimedBlockCache(max_entry_life_ms=5_000, clock=clock, scheduler=scheduler)
    yield c
    c.destroy()


@pytest.mark.asyncio
async def test_put_value_stores_entry(dummy_mcp, cache):
    put_value_tool.register(dummy_mcp, cache=cache)
    fn = dummy_mcp.tools["cache_put"]

    out = await fn(key=" greeting ", value="hello", lifetime_ms=1_000)

    assert out == {"stored": True, "key": "greeting", "lifetime_ms": 1_000}
    assert cache.get("greeting") == "hello"


@pytest.mark.asyncio
async def test_put_value_reports_rejected_lifetime(dummy_mcp, cache):
    put_value_tool.register(dummy_mcp, cache=cache)
    fn = dummy_mcp.tools["cache_put"]

    out = await fn(key="k", value="v", lifetime_ms=5_000)

    assert out["stored"] is False
    assert cache.get("k") is None


@pytest.mark.asyncio
async def test_put_value_validates_missing_key(dummy_mcp, cache):
    put_value_tool.register(dummy_mcp, cache=cache)
    fn = dummy_mcp.tools["cache_put"]

    with pytest.raises(ValidationError):
        await fn(key="   ", value="v", lifetime_ms=1_000)


@pytest.mark.asyncio
async def test_put_value_validates_value_size(monkeypatch, dummy_mcp, cache):
    monkeypatch.setattr(put_value_tool, "MAX_VALUE_CHARS", 4)

    put_value_tool.register(dummy_mcp, cache=cache)
    fn = dummy_mcp.tools["cache_put"]

    with pytest.raises(ValidationError):
        await fn(key="k", value="too long", lifetime_ms=1_000)
