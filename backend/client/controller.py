"""
Runs the search state machine's intents on the asyncio event loop.

All methods are meant to be called from the loop's thread (the UI thread);
network calls run as tasks and report back through ``dispatch``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set

from client.navigator import FLY_DURATION_SECONDS, SELECT_ZOOM, MapNavigator, SearchMarker
from client.search_client import SEARCH_TIMEOUT_SECONDS
from client.search_machine import (
    DEBOUNCE_SECONDS,
    CancelPending,
    DebounceElapsed,
    Event,
    FetchSuggestions,
    Geocode,
    GeocodeFailed,
    GeocodeLoaded,
    InputChanged,
    Intent,
    Key,
    KeyPressed,
    ScheduleQuery,
    SearchModel,
    ShowLocation,
    SuggestionClicked,
    SuggestionsFailed,
    SuggestionsLoaded,
    TornDown,
    transition,
)
from domain.errors import NetworkFailure
from domain.models import SearchResult
from services.geocoding import GeocodeResult

logger = logging.getLogger(__name__)


class SuggestionSource(Protocol):
    async def search(self, query: str) -> List[SearchResult]: ...


class Geocoder(Protocol):
    async def search(self, query: str, limit: int = 1) -> List[GeocodeResult]: ...


class SearchController:
    def __init__(
        self,
        navigator: MapNavigator,
        suggestions: SuggestionSource,
        geocoder: Geocoder,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        search_timeout: float = SEARCH_TIMEOUT_SECONDS,
        on_change: Optional[Callable[[SearchModel], None]] = None,
    ):
        self.navigator = navigator
        self.suggestions = suggestions
        self.geocoder = geocoder
        self.debounce_seconds = debounce_seconds
        self.search_timeout = search_timeout
        self.on_change = on_change
        self.marker = SearchMarker(navigator)
        self.model = SearchModel()
        self._timer: Optional[asyncio.Task] = None
        self._requests: Set[asyncio.Task] = set()

    # UI entry points

    def type_text(self, text: str) -> SearchModel:
        return self.dispatch(InputChanged(text))

    def press(self, key: Key | str) -> SearchModel:
        return self.dispatch(KeyPressed(Key(key)))

    def choose(self, index: int) -> SearchModel:
        return self.dispatch(SuggestionClicked(index))

    async def aclose(self) -> None:
        """Tear down: cancel timers and requests and remove the search marker."""
        pending = [t for t in (self._timer, *self._requests) if t is not None]
        self.dispatch(TornDown())
        self.marker.clear()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def dispatch(self, event: Event) -> SearchModel:
        self.model, intents = transition(self.model, event)
        for intent in intents:
            self._run(intent)
        if self.on_change is not None:
            self.on_change(self.model)
        return self.model

    # Effect runner

    def _run(self, intent: Intent) -> None:
        if isinstance(intent, CancelPending):
            self._cancel_pending()
        elif isinstance(intent, ScheduleQuery):
            self._timer = asyncio.get_running_loop().create_task(self._debounce(intent.generation))
        elif isinstance(intent, FetchSuggestions):
            self._spawn(self._fetch_suggestions(intent))
        elif isinstance(intent, Geocode):
            self._spawn(self._geocode(intent))
        elif isinstance(intent, ShowLocation):
            self.navigator.fly_to(intent.position, SELECT_ZOOM, FLY_DURATION_SECONDS)
            self.marker.place(intent.position, intent.label)
        else:
            raise TypeError(f"Unknown search intent: {intent!r}")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._requests.add(task)
        task.add_done_callback(self._requests.discard)

    def _cancel_pending(self) -> None:
        current = asyncio.current_task()
        if self._timer is not None and self._timer is not current:
            self._timer.cancel()
        self._timer = None
        for task in list(self._requests):
            if task is not current:
                task.cancel()

    async def _debounce(self, generation: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self.dispatch(DebounceElapsed(generation))

    async def _fetch_suggestions(self, intent: FetchSuggestions) -> None:
        try:
            results = await asyncio.wait_for(
                self.suggestions.search(intent.query), timeout=self.search_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Local search timed out for %r", intent.query)
            self.dispatch(SuggestionsFailed(intent.generation, "timeout"))
        except NetworkFailure as exc:
            logger.warning("Local search failed for %r: %s", intent.query, exc)
            self.dispatch(SuggestionsFailed(intent.generation, str(exc)))
        except Exception as exc:
            logger.exception("Unexpected error in local search for %r", intent.query)
            self.dispatch(SuggestionsFailed(intent.generation, repr(exc)))
        else:
            self.dispatch(SuggestionsLoaded(intent.generation, tuple(results)))

    async def _geocode(self, intent: Geocode) -> None:
        try:
            results = await self.geocoder.search(intent.query, limit=1)
        except NetworkFailure as exc:
            logger.warning("Geocoder fallback failed for %r: %s", intent.query, exc)
            self.dispatch(GeocodeFailed(intent.generation, str(exc)))
        except Exception as exc:
            logger.exception("Unexpected error in geocoder fallback for %r", intent.query)
            self.dispatch(GeocodeFailed(intent.generation, repr(exc)))
        else:
            self.dispatch(GeocodeLoaded(intent.generation, tuple(results)))
