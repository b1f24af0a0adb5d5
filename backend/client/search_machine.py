"""
State machine behind the address search box.

``transition`` is pure: it takes the current model and an event and returns
the next model plus the intents (timers, requests, map moves) the controller
should carry out. Every debounce timer and request is tagged with the
generation that issued it; events from an older generation are ignored.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from domain.models import MAX_SEARCH_RESULTS, LatLng, SearchResult
from services.geocoding import GeocodeResult
from services.search_matcher import is_query_too_short

DEBOUNCE_SECONDS = 0.3

MSG_NOT_FOUND = "Address not found."
MSG_INVALID_COORDINATES = "The search returned invalid coordinates."
MSG_UNAVAILABLE = "Search is unavailable right now."
DEFAULT_GEOCODE_LABEL = "Address found."


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    QUERYING = "querying"
    SHOWING_SUGGESTIONS = "showing_suggestions"
    NO_RESULTS = "no_results"
    ERROR = "error"


class Key(str, Enum):
    ARROW_DOWN = "ArrowDown"
    ARROW_UP = "ArrowUp"
    ENTER = "Enter"
    ESCAPE = "Escape"


@dataclass(frozen=True)
class SearchModel:
    state: SearchState = SearchState.IDLE
    query: str = ""
    suggestions: Tuple[SearchResult, ...] = ()
    cursor: int = -1
    panel_open: bool = False
    generation: int = 0
    message: Optional[str] = None  # user-visible error text

    @property
    def highlighted(self) -> Optional[SearchResult]:
        if 0 <= self.cursor < len(self.suggestions):
            return self.suggestions[self.cursor]
        return None


# Events

@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class DebounceElapsed:
    generation: int


@dataclass(frozen=True)
class SuggestionsLoaded:
    generation: int
    results: Tuple[SearchResult, ...]


@dataclass(frozen=True)
class SuggestionsFailed:
    generation: int
    reason: str = ""


@dataclass(frozen=True)
class KeyPressed:
    key: Key


@dataclass(frozen=True)
class SuggestionClicked:
    index: int


@dataclass(frozen=True)
class GeocodeLoaded:
    generation: int
    results: Tuple[GeocodeResult, ...]


@dataclass(frozen=True)
class GeocodeFailed:
    generation: int
    reason: str = ""


@dataclass(frozen=True)
class TornDown:
    pass


Event = Union[
    InputChanged,
    DebounceElapsed,
    SuggestionsLoaded,
    SuggestionsFailed,
    KeyPressed,
    SuggestionClicked,
    GeocodeLoaded,
    GeocodeFailed,
    TornDown,
]


# Intents

@dataclass(frozen=True)
class CancelPending:
    """Cancel the debounce timer and every in-flight request."""


@dataclass(frozen=True)
class ScheduleQuery:
    generation: int
    delay: float


@dataclass(frozen=True)
class FetchSuggestions:
    generation: int
    query: str


@dataclass(frozen=True)
class Geocode:
    generation: int
    query: str


@dataclass(frozen=True)
class ShowLocation:
    position: LatLng
    label: str


Intent = Union[CancelPending, ScheduleQuery, FetchSuggestions, Geocode, ShowLocation]
Transition = Tuple[SearchModel, List[Intent]]


def _reset(model: SearchModel) -> SearchModel:
    """Empty, closed search box on a fresh generation."""
    return SearchModel(generation=model.generation + 1)


def _select(model: SearchModel, position: LatLng, label: str) -> Transition:
    return _reset(model), [CancelPending(), ShowLocation(position=position, label=label)]


def _on_input(model: SearchModel, event: InputChanged) -> Transition:
    generation = model.generation + 1
    if is_query_too_short(event.text):
        cleared = SearchModel(query=event.text, generation=generation)
        return cleared, [CancelPending()]
    debouncing = replace(
        model,
        state=SearchState.DEBOUNCING,
        query=event.text,
        suggestions=(),
        cursor=-1,
        panel_open=False,
        generation=generation,
        message=None,
    )
    return debouncing, [CancelPending(), ScheduleQuery(generation=generation, delay=DEBOUNCE_SECONDS)]


def _on_key(model: SearchModel, key: Key) -> Transition:
    count = len(model.suggestions)
    if key is Key.ARROW_DOWN:
        if not count:
            return model, []
        return replace(model, cursor=min(model.cursor + 1, count - 1)), []
    if key is Key.ARROW_UP:
        if not count:
            return model, []
        return replace(model, cursor=max(model.cursor - 1, -1)), []
    if key is Key.ESCAPE:
        return _reset(model), [CancelPending()]

    # Enter: highlighted, else first suggestion, else ask the external geocoder
    if count:
        chosen = model.suggestions[model.cursor if model.cursor >= 0 else 0]
        return _select(model, chosen.centroid, chosen.label)
    query = model.query.strip()
    if not query:
        return model, []
    generation = model.generation + 1
    querying = replace(
        model,
        state=SearchState.QUERYING,
        panel_open=False,
        cursor=-1,
        generation=generation,
        message=None,
    )
    return querying, [CancelPending(), Geocode(generation=generation, query=query)]


def _on_geocode(model: SearchModel, event: GeocodeLoaded) -> Transition:
    if not event.results:
        return replace(model, state=SearchState.ERROR, message=MSG_NOT_FOUND), []
    first = event.results[0]
    if first.position is None:
        return replace(model, state=SearchState.ERROR, message=MSG_INVALID_COORDINATES), []
    return _select(model, first.position, first.display_name or DEFAULT_GEOCODE_LABEL)


def _is_current(model: SearchModel, generation: int) -> bool:
    return generation == model.generation


def transition(model: SearchModel, event: Event) -> Transition:
    """Compute the next model and the side effects for ``event``."""
    if isinstance(event, InputChanged):
        return _on_input(model, event)

    if isinstance(event, DebounceElapsed):
        if not _is_current(model, event.generation) or model.state is not SearchState.DEBOUNCING:
            return model, []
        querying = replace(model, state=SearchState.QUERYING)
        return querying, [FetchSuggestions(generation=model.generation, query=model.query.strip())]

    if isinstance(event, SuggestionsLoaded):
        if not _is_current(model, event.generation) or model.state is not SearchState.QUERYING:
            return model, []
        results = tuple(event.results[:MAX_SEARCH_RESULTS])
        return replace(
            model,
            state=SearchState.SHOWING_SUGGESTIONS if results else SearchState.NO_RESULTS,
            suggestions=results,
            panel_open=bool(results),
            cursor=-1,
        ), []

    if isinstance(event, SuggestionsFailed):
        if not _is_current(model, event.generation) or model.state is not SearchState.QUERYING:
            return model, []
        return replace(
            model,
            state=SearchState.ERROR,
            suggestions=(),
            panel_open=False,
            cursor=-1,
        ), []

    if isinstance(event, KeyPressed):
        return _on_key(model, event.key)

    if isinstance(event, SuggestionClicked):
        if not 0 <= event.index < len(model.suggestions):
            return model, []
        chosen = model.suggestions[event.index]
        return _select(model, chosen.centroid, chosen.label)

    if isinstance(event, GeocodeLoaded):
        if not _is_current(model, event.generation) or model.state is not SearchState.QUERYING:
            return model, []
        return _on_geocode(model, event)

    if isinstance(event, GeocodeFailed):
        if not _is_current(model, event.generation) or model.state is not SearchState.QUERYING:
            return model, []
        return replace(model, state=SearchState.ERROR, message=MSG_UNAVAILABLE), []

    if isinstance(event, TornDown):
        return _reset(model), [CancelPending()]

    raise TypeError(f"Unknown search event: {event!r}")
