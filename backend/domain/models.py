"""
Core domain models for the service map.
These are framework-agnostic and shared by the API, the stores and the client.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

LatLng = Tuple[float, float]

DEFAULT_CENTER: LatLng = (-23.55052, -46.633308)  # Praça da Sé, São Paulo
MAX_SEARCH_RESULTS = 10


class GeometryKind(str, Enum):
    """Kind of geometry a feature is drawn with."""
    POLYGON = "polygon"
    LINE = "line"
    POINT = "point"


def _as_latlng(value: Any) -> LatLng:
    lat, lon = value
    return (float(lat), float(lon))


@dataclass(frozen=True)
class AddressEntry:
    """One row of the persisted address index."""
    logradouro: str
    normalized: str
    centroid: LatLng
    setor: str
    name: str
    subprefeitura: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddressEntry":
        return cls(
            logradouro=str(data["logradouro"]),
            normalized=str(data["normalized"]),
            centroid=_as_latlng(data["centroid"]),
            setor=str(data.get("setor") or ""),
            name=str(data.get("name") or ""),
            subprefeitura=data.get("subprefeitura"),
        )

    def to_result(self) -> "SearchResult":
        return SearchResult(
            logradouro=self.logradouro,
            centroid=self.centroid,
            setor=self.setor,
            name=self.name,
            subprefeitura=self.subprefeitura,
        )


@dataclass(frozen=True)
class SearchResult:
    """Client-facing projection of an AddressEntry (no normalized field)."""
    logradouro: str
    centroid: LatLng
    setor: str
    name: str
    subprefeitura: Optional[str] = None

    @property
    def label(self) -> str:
        if self.subprefeitura:
            return f"{self.logradouro} - {self.subprefeitura}"
        return self.logradouro

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            logradouro=str(data["logradouro"]),
            centroid=_as_latlng(data["centroid"]),
            setor=str(data.get("setor") or ""),
            name=str(data.get("name") or ""),
            subprefeitura=data.get("subprefeitura"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "logradouro": self.logradouro,
            "centroid": list(self.centroid),
            "setor": self.setor,
            "name": self.name,
            "subprefeitura": self.subprefeitura,
        }


@dataclass(frozen=True)
class Bounds:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Bounds"]:
        if not data:
            return None
        return cls(
            min_lat=float(data["minLat"]),
            max_lat=float(data["maxLat"]),
            min_lon=float(data["minLon"]),
            max_lon=float(data["maxLon"]),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "minLat": self.min_lat,
            "maxLat": self.max_lat,
            "minLon": self.min_lon,
            "maxLon": self.max_lon,
        }


# Optional string attributes carried through verbatim (JSON key names).
_FEATURE_TEXT_FIELDS = (
    "serviceDisplay",
    "subprefeitura",
    "turno",
    "frequencia",
    "cronograma",
    "logradouro",
    "service_type",
    "service_type_code",
    "service_icon",
    "lineColor",
    "popupHtml",
    "volumetria",
)


@dataclass
class FeatureRecord:
    """A single drawable service area, route or point."""
    service: str
    setor: str
    name: str
    coords: List[LatLng]
    centroid: LatLng
    fill_color: str
    geometry: GeometryKind = GeometryKind.POLYGON
    line_width: Optional[float] = None
    # serviceDisplay, turno, cronograma, popupHtml, ... keyed by JSON name
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureRecord":
        geometry = data.get("geometry") or GeometryKind.POLYGON.value
        line_width = data.get("lineWidth")
        return cls(
            service=str(data["service"]),
            setor=str(data.get("setor") or ""),
            name=str(data.get("name") or ""),
            coords=[_as_latlng(c) for c in data.get("coords") or []],
            centroid=_as_latlng(data["centroid"]),
            fill_color=str(data.get("fillColor") or ""),
            geometry=GeometryKind(geometry),
            line_width=float(line_width) if line_width is not None else None,
            attributes={k: data.get(k) for k in _FEATURE_TEXT_FIELDS if k in data},
        )

    def get(self, key: str) -> Optional[str]:
        return self.attributes.get(key)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "service": self.service,
            "setor": self.setor,
            "name": self.name,
            "coords": [list(c) for c in self.coords],
            "centroid": list(self.centroid),
            "fillColor": self.fill_color,
            "geometry": self.geometry.value,
            "lineWidth": self.line_width,
        }
        payload.update(self.attributes)
        return payload


@dataclass
class FeatureCollection:
    """Features grouped by service key, plus the map's default view."""
    services: Dict[str, List[FeatureRecord]] = field(default_factory=dict)
    center: LatLng = DEFAULT_CENTER
    bounds: Optional[Bounds] = None

    @classmethod
    def empty(cls) -> "FeatureCollection":
        return cls(services={}, center=DEFAULT_CENTER, bounds=None)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        rejected: Optional[List[Tuple[str, int, Exception]]] = None,
    ) -> "FeatureCollection":
        """Build a collection from a persisted snapshot.

        Any embedded ``addressIndex`` is ignored: address data is only served
        by the search endpoint.

        When ``rejected`` is given, records that fail to parse are skipped and
        appended to it as ``(service, position, error)``; otherwise the first
        bad record raises.
        """
        services: Dict[str, List[FeatureRecord]] = {}
        for key, items in (data.get("services") or {}).items():
            records = services.setdefault(str(key), [])
            for position, item in enumerate(items or []):
                try:
                    records.append(FeatureRecord.from_dict(item))
                except (AttributeError, KeyError, TypeError, ValueError) as exc:
                    if rejected is None:
                        raise
                    rejected.append((str(key), position, exc))
        center = data.get("center")
        return cls(
            services=services,
            center=_as_latlng(center) if center else DEFAULT_CENTER,
            bounds=Bounds.from_dict(data.get("bounds")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "services": {k: [f.to_dict() for f in v] for k, v in self.services.items()},
            "center": list(self.center),
            "bounds": self.bounds.to_dict() if self.bounds else None,
        }

    def view_bounds(self) -> Optional[Bounds]:
        """Declared bounds, or the extent of every feature coordinate."""
        if self.bounds is not None:
            return self.bounds
        points = [pt for features in self.services.values() for f in features for pt in f.coords]
        if not points:
            return None
        lats = [p[0] for p in points]
        lons = [p[1] for p in points]
        return Bounds(min_lat=min(lats), max_lat=max(lats), min_lon=min(lons), max_lon=max(lons))

    def feature_count(self) -> int:
        return sum(len(v) for v in self.services.values())
