"""
In-process TTL cache with single-flight refresh.

One instance wraps one loader (a snapshot file, usually). Values are replaced
wholesale on refresh and never mutated in place.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    loaded_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return (now - self.loaded_at) < ttl_seconds


class TTLCache(Generic[T]):
    """Cache a loader's result for ``ttl_seconds``.

    Only one loader call runs at a time. While a refresh is in flight, callers
    that already have a (stale) value get it back immediately; callers with
    no value wait for the load to finish. A failed refresh propagates to the
    caller that ran it and keeps the previous entry.
    """

    def __init__(
        self,
        loader: Callable[[], T],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.name = name
        self._entry: Optional[CacheEntry[T]] = None
        self._refreshing = False
        self._cond = threading.Condition()

    @property
    def entry(self) -> Optional[CacheEntry[T]]:
        return self._entry

    def get(self) -> T:
        with self._cond:
            while True:
                entry = self._entry
                if entry is not None and entry.is_fresh(self.clock(), self.ttl_seconds):
                    return entry.value
                if not self._refreshing:
                    self._refreshing = True
                    break
                if entry is not None:
                    logger.debug("%s: serving stale value while refresh is in flight", self.name)
                    return entry.value
                self._cond.wait()

        started = self.clock()
        try:
            value = self.loader()
        except Exception:
            with self._cond:
                self._refreshing = False
                self._cond.notify_all()
            raise

        with self._cond:
            self._entry = CacheEntry(value=value, loaded_at=started)
            self._refreshing = False
            self._cond.notify_all()
        return value

    def invalidate(self) -> None:
        with self._cond:
            self._entry = None
