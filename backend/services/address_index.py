"""
Time-cached access to the persisted address index.

The index has no bundled fallback: a missing or corrupt file surfaces as a
LoadFailure and the search endpoint reports it as a server error.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence

from domain.errors import LoadFailure
from domain.models import AddressEntry
from services.ttl_cache import TTLCache
from settings import settings
from storage.snapshot_storage import PathLike, SnapshotStorage

logger = logging.getLogger(__name__)


def parse_address_index(payload, source: PathLike = "<memory>") -> List[AddressEntry]:
    """Convert the raw JSON list into AddressEntry rows."""
    if not isinstance(payload, list):
        raise LoadFailure(source, f"expected a JSON list, got {type(payload).__name__}")
    entries: List[AddressEntry] = []
    for pos, item in enumerate(payload):
        try:
            entries.append(AddressEntry.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise LoadFailure(source, f"invalid entry at position {pos}: {exc!r}")
    return entries


class AddressIndexStore:
    def __init__(
        self,
        path: Optional[PathLike] = None,
        storage: Optional[SnapshotStorage] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = path or settings.ADDRESS_INDEX_PATH
        self.storage = storage or SnapshotStorage(settings.DATA_DIR)
        self._cache: TTLCache[Sequence[AddressEntry]] = TTLCache(
            self._load,
            ttl_seconds if ttl_seconds is not None else settings.ADDRESS_INDEX_TTL_SECONDS,
            clock=clock,
            name="address-index",
        )

    def _load(self) -> Sequence[AddressEntry]:
        try:
            payload = self.storage.read_json(self.path)
            entries = tuple(parse_address_index(payload, self.path))
        except LoadFailure as exc:
            logger.error("Address index load failed: %s", exc)
            raise
        logger.info("Loaded address index from %s: %d entries", self.path, len(entries))
        return entries

    def get(self) -> Sequence[AddressEntry]:
        """Return the cached index, reloading it once the TTL has elapsed.

        Raises:
            LoadFailure: if a reload is needed and the snapshot is unusable
        """
        return self._cache.get()

    def invalidate(self) -> None:
        self._cache.invalidate()


_default_address_index_store: Optional[AddressIndexStore] = None


def get_default_address_index_store() -> AddressIndexStore:
    global _default_address_index_store
    if _default_address_index_store is None:
        _default_address_index_store = AddressIndexStore()
    return _default_address_index_store
