import logging

import pytest

import caches.timed_cache as timed_cache_mod
from caches.timed_cache import TimedCache
from core.errors import CacheDestroyedError


def test_timed_cache_add_get_and_expire(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    assert c.add("k", "v", 1_000) is True
    assert c.get("k") == "v"
    assert c.size == 1

    scheduler.advance(1_000)
    assert c.get("k") is None
    assert c.size == 0


def test_timed_cache_rejects_non_positive_lifetime(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    assert c.add("k", "v", 0) is False
    assert c.add("k", "v", -10) is False
    assert c.size == 0
    assert scheduler.tasks == []


def test_timed_cache_has_no_lifetime_ceiling(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    assert c.add("k", "v", 10_000_000) is True


def test_timed_cache_overwrite_cancels_previous_timer(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    c.add("k", "old", 1_000)
    c.add("k", "new", 5_000)

    assert scheduler.tasks[0].cancelled is True
    assert len(scheduler.pending) == 1

    scheduler.advance(2_000)
    assert c.get("k") == "new"


def test_timed_cache_remove_cancels_timer(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    c.add("k", "v", 1_000)
    assert c.remove("k") == "v"
    assert scheduler.pending == []
    assert c.get("k") is None


def test_timed_cache_one_task_per_key(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    for i in range(100):
        c.add(i, i, 1_000 + i)

    assert len(scheduler.pending) == 100
    assert c.snapshot().scheduled_tasks == 100


def test_timed_cache_stale_timer_does_not_remove_newer_entry(clock, scheduler):
    c = TimedCache(clock=clock, scheduler=scheduler)

    c.add("k", "old", 1_000)
    stale = scheduler.tasks[0].callback
    c.add("k", "new", 5_000)

    clock.advance(1_000)
    stale()
    assert c.get("k") == "new"


def test_timed_cache_refused_schedule_is_reaped(clock, scheduler, caplog):
    c = TimedCache(clock=clock, scheduler=scheduler)
    scheduler.refuse = True

    with caplog.at_level(logging.WARNING, logger="caches.timed_cache"):
        c.add("a", 1, 1_000)
    assert "Could not schedule expiry" in caplog.text

    scheduler.refuse = False
    clock.advance(1_000)
    c.add("b", 2, 1_000)

    assert c.size == 1
    assert c.get("b") == 2


def test_timed_cache_destroy(monkeypatch, clock, scheduler):
    monkeypatch.setattr(timed_cache_mod, "ThreadScheduler", lambda: scheduler)

    c = TimedCache(clock=clock)
    c.add("a", 1, 1_000)
    c.destroy()
    c.destroy()

    assert scheduler.shutdown_calls == 1
    with pytest.raises(CacheDestroyedError):
        c.get("a")


@pytest.mark.parametrize("lifetime", [0.5, 10.25, float("inf")])
def test_timed_cache_rejects_fractional_lifetime(clock, scheduler, lifetime):
    c = TimedCache(clock=clock, scheduler=scheduler)

    assert c.add("k", "v", lifetime) is False
    assert c.size == 0


def test_timed_cache_foreign_scheduler_error_is_reaped(clock):
    class BrokenScheduler:
        def schedule(self, delay_ms, callback):
            raise ValueError("queue full")

        def shutdown(self):
            pass

    c = TimedCache(clock=clock, scheduler=BrokenScheduler())

    assert c.add("a", 1, 1_000) is True
    assert c.get("a") == 1

    clock.advance(1_000)
    c.add("b", 2, 1_000)
    assert c.size == 1
