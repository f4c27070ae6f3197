from __future__ import annotations


class TTLCacheError(Exception):
    """Base error for the TTL cache."""


class ValidationError(TTLCacheError):
    """Raised when configuration or user input is invalid."""


class CacheDestroyedError(TTLCacheError):
    """Raised when a cache is used after destroy()."""


class SchedulerError(TTLCacheError):
    """Raised when a task scheduler refuses to accept a task."""
