"""
Loading and caching of the main feature collection.

Lookup order: configured primary snapshot, bundled sample snapshot, then an
empty collection centered on São Paulo. ``load()`` never raises.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, List, Optional, Tuple

from domain.errors import LoadFailure
from domain.models import FeatureCollection
from services.service_icons import feature_icon_key
from services.ttl_cache import TTLCache
from settings import settings
from storage.snapshot_storage import PathLike, SnapshotStorage

logger = logging.getLogger(__name__)

_TABLE_TAG = re.compile(r"<table")


def normalize_popup(html: Optional[str]) -> Optional[str]:
    if not html:
        return None
    return _TABLE_TAG.sub("<table class='w-full text-sm'", html)


def _prepare(collection: FeatureCollection) -> FeatureCollection:
    for features in collection.services.values():
        for feature in features:
            if "popupHtml" in feature.attributes:
                feature.attributes["popupHtml"] = normalize_popup(feature.attributes["popupHtml"])
            # surfaces unknown icon keys in the log at load time
            feature_icon_key(feature)
    # clients fit the map to these; snapshots often ship without them
    collection.bounds = collection.view_bounds()
    return collection


class FeatureDataStore:
    def __init__(
        self,
        primary_path: Optional[PathLike] = None,
        sample_path: Optional[PathLike] = None,
        storage: Optional[SnapshotStorage] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.primary_path = primary_path or settings.FEATURES_JSON_PATH
        self.sample_path = sample_path or settings.FEATURES_SAMPLE_PATH
        self.storage = storage or SnapshotStorage(settings.DATA_DIR)
        self._cache: TTLCache[FeatureCollection] = TTLCache(
            self._load_uncached,
            ttl_seconds if ttl_seconds is not None else settings.features_ttl,
            clock=clock,
            name="features",
        )

    def _read_collection(self, path: PathLike) -> Optional[FeatureCollection]:
        try:
            payload = self.storage.read_json(path)
            if not isinstance(payload, dict):
                raise LoadFailure(path, f"expected a JSON object, got {type(payload).__name__}")
            rejected: List[Tuple[str, int, Exception]] = []
            try:
                collection = FeatureCollection.from_dict(payload, rejected=rejected)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise LoadFailure(path, f"invalid feature collection: {exc!r}")
        except LoadFailure as exc:
            logger.warning("Feature snapshot unavailable: %s", exc)
            return None
        for service, position, exc in rejected:
            logger.warning("Skipping invalid feature %s[%d] in %s: %r", service, position, path, exc)
        return collection

    def _load_uncached(self) -> FeatureCollection:
        collection = self._read_collection(self.primary_path)
        if collection is None:
            logger.warning("Falling back to sample feature snapshot %s", self.sample_path)
            collection = self._read_collection(self.sample_path)
        if collection is None:
            logger.warning("No feature snapshot available; serving an empty collection")
            return FeatureCollection.empty()
        logger.info(
            "Loaded feature collection: %d services, %d features",
            len(collection.services),
            collection.feature_count(),
        )
        return _prepare(collection)

    def load(self) -> FeatureCollection:
        """Return the cached collection; never raises."""
        try:
            return self._cache.get()
        except Exception:
            logger.exception("Unexpected error loading features; serving an empty collection")
            return FeatureCollection.empty()

    def invalidate(self) -> None:
        self._cache.invalidate()


_default_feature_store: Optional[FeatureDataStore] = None


def get_default_feature_store() -> FeatureDataStore:
    global _default_feature_store
    if _default_feature_store is None:
        _default_feature_store = FeatureDataStore()
    return _default_feature_store
