"""
Closed mapping from service/icon keys to marker icon metadata.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Set

from domain.models import FeatureRecord

logger = logging.getLogger(__name__)


class IconKey(str, Enum):
    WATER = "water"
    COMMUNITY = "community"
    PARKS = "parks"
    SEARCH = "search"
    DEFAULT = "default"


@dataclass(frozen=True)
class IconMeta:
    key: IconKey
    label: str
    color_class: str
    bg_class: str = "bg-white"


SERVICE_ICON_REGISTRY: Dict[IconKey, IconMeta] = {
    IconKey.WATER: IconMeta(IconKey.WATER, "Lavagem Especial de Equipamentos Públicos", "text-sky-500"),
    IconKey.COMMUNITY: IconMeta(IconKey.COMMUNITY, "Limpeza em áreas de difícil acesso", "text-rose-500"),
    IconKey.PARKS: IconMeta(IconKey.PARKS, "Varrição de Praças", "text-emerald-500"),
    IconKey.SEARCH: IconMeta(IconKey.SEARCH, "Endereço pesquisado", "text-primary"),
    IconKey.DEFAULT: IconMeta(IconKey.DEFAULT, "Serviço", "text-primary"),
}

_reported_unknown: Set[str] = set()
_reported_lock = threading.Lock()


def parse_icon_key(raw: Optional[str]) -> Optional[IconKey]:
    """Return the IconKey for ``raw``, or None when it is not a known key."""
    if not raw:
        return None
    try:
        return IconKey(raw.strip().lower())
    except ValueError:
        return None


def resolve_icon_key(raw: Optional[str]) -> IconKey:
    """Map a free-form key onto the closed set, reporting unknown keys once."""
    if not raw:
        return IconKey.DEFAULT
    key = parse_icon_key(raw)
    if key is not None:
        return key
    with _reported_lock:
        first_time = raw not in _reported_unknown
        _reported_unknown.add(raw)
    if first_time:
        logger.warning("Unrecognized icon key %r; using default icon", raw)
    return IconKey.DEFAULT


def feature_icon_key(feature: FeatureRecord) -> IconKey:
    raw = (
        feature.get("service_icon")
        or feature.get("service_type_code")
        or feature.get("service_type")
    )
    return resolve_icon_key(raw)


def get_service_icon_meta(key: IconKey) -> IconMeta:
    return SERVICE_ICON_REGISTRY[key]
