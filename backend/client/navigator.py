"""
Map camera/marker contract consumed by the search controller.

The map widget itself lives outside this package; anything with these
methods can be plugged in.
"""
from __future__ import annotations

from typing import Any, Protocol

from domain.models import LatLng
from services.service_icons import IconKey

SELECT_ZOOM = 18
FLY_DURATION_SECONDS = 0.75


class MapNavigator(Protocol):
    def set_view(self, center: LatLng, zoom: int) -> None: ...

    def fly_to(self, center: LatLng, zoom: int, duration_seconds: float) -> None: ...

    def add_marker(self, position: LatLng, icon_key: IconKey) -> Any: ...

    def remove_marker(self, handle: Any) -> None: ...

    def bind_popup(self, handle: Any, text: str) -> None: ...


class SearchMarker:
    """Keeps at most one search pin on the map."""

    def __init__(self, navigator: MapNavigator):
        self.navigator = navigator
        self.handle: Any = None

    def place(self, position: LatLng, label: str | None) -> None:
        self.clear()
        self.handle = self.navigator.add_marker(position, IconKey.SEARCH)
        if label:
            self.navigator.bind_popup(self.handle, label)

    def clear(self) -> None:
        if self.handle is not None:
            self.navigator.remove_marker(self.handle)
            self.handle = None

