from dataclasses import replace

from client.search_machine import (
    DEBOUNCE_SECONDS,
    MSG_INVALID_COORDINATES,
    MSG_NOT_FOUND,
    MSG_UNAVAILABLE,
    CancelPending,
    DebounceElapsed,
    FetchSuggestions,
    Geocode,
    GeocodeFailed,
    GeocodeLoaded,
    InputChanged,
    Key,
    KeyPressed,
    ScheduleQuery,
    SearchModel,
    SearchState,
    ShowLocation,
    SuggestionClicked,
    SuggestionsFailed,
    SuggestionsLoaded,
    TornDown,
    transition,
)
from domain.models import SearchResult
from services.geocoding import GeocodeResult


def _result(i: int) -> SearchResult:
    return SearchResult(logradouro=f"Rua {i}", centroid=(-23.0 - i, -46.0), setor=f"S{i}", name="n")


def _showing(count: int = 3) -> SearchModel:
    suggestions = tuple(_result(i) for i in range(count))
    return SearchModel(
        state=SearchState.SHOWING_SUGGESTIONS,
        query="rua",
        suggestions=suggestions,
        panel_open=True,
        generation=5,
    )


def test_input_schedules_debounced_query():
    model, intents = transition(SearchModel(), InputChanged("av"))
    assert model.state is SearchState.DEBOUNCING
    assert model.generation == 1
    assert intents == [CancelPending(), ScheduleQuery(generation=1, delay=DEBOUNCE_SECONDS)]


def test_typing_drops_suggestions_for_the_previous_query():
    model, _ = transition(_showing(3), InputChanged("rua nova"))
    assert model.state is SearchState.DEBOUNCING
    assert model.suggestions == ()
    assert model.panel_open is False

    model, intents = transition(model, KeyPressed(Key.ENTER))
    assert model.state is SearchState.QUERYING
    assert intents == [CancelPending(), Geocode(generation=7, query="rua nova")]


def test_short_input_clears_and_issues_nothing():
    model, intents = transition(_showing(), InputChanged(" a"))
    assert model.state is SearchState.IDLE
    assert model.suggestions == ()
    assert model.panel_open is False
    assert model.cursor == -1
    assert intents == [CancelPending()]


def test_superseded_debounce_is_ignored():
    model, _ = transition(SearchModel(), InputChanged("av"))
    model, _ = transition(model, InputChanged("ave"))
    stale, intents = transition(model, DebounceElapsed(generation=1))
    assert stale == model
    assert intents == []

    model, intents = transition(model, DebounceElapsed(generation=2))
    assert model.state is SearchState.QUERYING
    assert intents == [FetchSuggestions(generation=2, query="ave")]


def test_results_open_panel_only_when_non_empty():
    querying = SearchModel(state=SearchState.QUERYING, query="rua", generation=3)
    model, _ = transition(querying, SuggestionsLoaded(3, (_result(0), _result(1))))
    assert model.state is SearchState.SHOWING_SUGGESTIONS
    assert model.panel_open
    assert len(model.suggestions) == 2

    model, _ = transition(querying, SuggestionsLoaded(3, ()))
    assert model.state is SearchState.NO_RESULTS
    assert not model.panel_open


def test_stale_results_do_not_mutate_state():
    querying = SearchModel(state=SearchState.QUERYING, query="rua", generation=3)
    assert transition(querying, SuggestionsLoaded(2, (_result(0),))) == (querying, [])
    assert transition(querying, SuggestionsFailed(2, "boom")) == (querying, [])


def test_search_failure_becomes_silent_error_state():
    querying = SearchModel(state=SearchState.QUERYING, query="rua", generation=3,
                           suggestions=(_result(0),), panel_open=True)
    model, intents = transition(querying, SuggestionsFailed(3, "timeout"))
    assert model.state is SearchState.ERROR
    assert model.suggestions == ()
    assert model.message is None
    assert intents == []


def test_arrow_navigation_clamps_without_wraparound():
    model = _showing(3)
    cursors = []
    for _ in range(4):
        model, _ = transition(model, KeyPressed(Key.ARROW_DOWN))
        cursors.append(model.cursor)
    assert cursors == [0, 1, 2, 2]

    for _ in range(4):
        model, _ = transition(model, KeyPressed(Key.ARROW_UP))
    assert model.cursor == -1


def test_arrows_without_suggestions_do_nothing():
    model = SearchModel(query="rua")
    assert transition(model, KeyPressed(Key.ARROW_DOWN)) == (model, [])


def test_escape_clears_query_and_resets_cursor():
    model = replace(_showing(3), cursor=2)
    model, intents = transition(model, KeyPressed(Key.ESCAPE))
    assert model.query == ""
    assert model.cursor == -1
    assert not model.panel_open
    assert model.suggestions == ()
    assert model.state is SearchState.IDLE
    assert intents == [CancelPending()]


def test_enter_selects_highlighted_suggestion():
    model = replace(_showing(3), cursor=1)
    model, intents = transition(model, KeyPressed(Key.ENTER))
    assert intents == [CancelPending(), ShowLocation(position=(-24.0, -46.0), label="Rua 1")]
    assert model.query == ""
    assert not model.panel_open
    assert model.state is SearchState.IDLE


def test_enter_without_highlight_selects_first():
    _, intents = transition(_showing(3), KeyPressed(Key.ENTER))
    assert intents[-1] == ShowLocation(position=(-23.0, -46.0), label="Rua 0")


def test_click_selects_suggestion_with_subprefecture_label():
    suggestion = SearchResult("Rua X", (-23.5, -46.5), "S", "n", subprefeitura="Sé")
    model = replace(_showing(1), suggestions=(suggestion,))
    _, intents = transition(model, SuggestionClicked(0))
    assert intents[-1] == ShowLocation(position=(-23.5, -46.5), label="Rua X - Sé")
    assert transition(model, SuggestionClicked(4)) == (model, [])


def test_enter_without_suggestions_falls_back_to_geocoder():
    model = SearchModel(state=SearchState.NO_RESULTS, query=" Rua Inexistente ", generation=7)
    model, intents = transition(model, KeyPressed(Key.ENTER))
    assert model.state is SearchState.QUERYING
    assert intents == [CancelPending(), Geocode(generation=8, query="Rua Inexistente")]

    done, intents = transition(model, GeocodeLoaded(8, (GeocodeResult("Somewhere", (-23.1, -46.2)),)))
    assert intents == [CancelPending(), ShowLocation(position=(-23.1, -46.2), label="Somewhere")]
    assert done.query == ""


def test_enter_with_empty_query_does_nothing():
    model = SearchModel()
    assert transition(model, KeyPressed(Key.ENTER)) == (model, [])


def test_geocode_outcomes_set_messages():
    querying = SearchModel(state=SearchState.QUERYING, query="x y", generation=2)

    model, intents = transition(querying, GeocodeLoaded(2, ()))
    assert (model.state, model.message, intents) == (SearchState.ERROR, MSG_NOT_FOUND, [])

    model, _ = transition(querying, GeocodeLoaded(2, (GeocodeResult("bad", None),)))
    assert model.message == MSG_INVALID_COORDINATES

    model, _ = transition(querying, GeocodeFailed(2, "HTTP 503"))
    assert model.message == MSG_UNAVAILABLE

    assert transition(querying, GeocodeFailed(1, "old")) == (querying, [])


def test_teardown_resets_and_cancels():
    model, intents = transition(_showing(), TornDown())
    assert model == SearchModel(generation=6)
    assert intents == [CancelPending()]
