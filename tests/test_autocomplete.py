"""
Tests for the search box autocomplete controller.
"""

import asyncio
from types import SimpleNamespace

import pytest

from app.services.autocomplete import AutocompleteController, property_path, search_path

DEBOUNCE = 0.03


class FakeSuggestionService:
    """Suggestion source returning one suggestion per matching slug."""

    def __init__(self, slugs=("ocean-view-villa", "villa-rosa", "villa-sol")):
        self.slugs = list(slugs)
        self.queries = []

    async def get_search_suggestions(self, query, limit=None):
        self.queries.append(query)
        return [SimpleNamespace(slug=slug) for slug in self.slugs][:limit]


@pytest.fixture
def service():
    return FakeSuggestionService()


@pytest.fixture
def navigations():
    return []


@pytest.fixture
def autocomplete(service, navigations):
    return AutocompleteController(service, navigations.append, debounce_seconds=DEBOUNCE)


async def type_text(controller: AutocompleteController, text: str):
    """Type text one character at a time, then let the debounce settle."""
    for end in range(1, len(text) + 1):
        controller.on_input(text[:end])
        await asyncio.sleep(0.005)
    await controller.wait()


class TestQuerying:
    """Test when suggestion queries are issued."""

    @pytest.mark.asyncio
    async def test_two_characters_never_query(self, autocomplete: AutocompleteController, service):
        await type_text(autocomplete, "vi")
        await asyncio.sleep(DEBOUNCE * 2)

        assert service.queries == []
        assert not autocomplete.is_open

    @pytest.mark.asyncio
    async def test_third_character_triggers_one_query(self, autocomplete: AutocompleteController, service):
        await type_text(autocomplete, "vil")

        assert service.queries == ["vil"]
        assert autocomplete.query_count == 1
        assert autocomplete.is_open
        assert len(autocomplete.suggestions) == 3

    @pytest.mark.asyncio
    async def test_fast_typing_collapses_to_last_input(self, autocomplete: AutocompleteController, service):
        await type_text(autocomplete, "villa")

        assert service.queries == ["villa"]

    @pytest.mark.asyncio
    async def test_deleting_below_minimum_cancels_pending_query(
        self, autocomplete: AutocompleteController, service
    ):
        autocomplete.on_input("vil")
        autocomplete.on_input("vi")
        await asyncio.sleep(DEBOUNCE * 2)

        assert service.queries == []
        assert autocomplete.suggestions == []

    @pytest.mark.asyncio
    async def test_no_results_keeps_dropdown_closed(self, navigations):
        controller = AutocompleteController(FakeSuggestionService(slugs=()), navigations.append, DEBOUNCE)

        await type_text(controller, "zzz")

        assert not controller.is_open


class TestKeyboardNavigation:
    """Test arrow, enter and escape handling."""

    @pytest.mark.asyncio
    async def test_arrows_move_and_clamp_highlight(self, autocomplete: AutocompleteController):
        await type_text(autocomplete, "villa")

        for expected in (0, 1, 2, 2):
            await autocomplete.on_key("ArrowDown")
            assert autocomplete.highlighted == expected

        for expected in (1, 0, -1, -1):
            await autocomplete.on_key("ArrowUp")
            assert autocomplete.highlighted == expected

    @pytest.mark.asyncio
    async def test_enter_opens_highlighted_property(self, autocomplete: AutocompleteController, navigations):
        await type_text(autocomplete, "villa")
        await autocomplete.on_key("ArrowDown")
        await autocomplete.on_key("ArrowDown")

        await autocomplete.on_key("Enter")

        assert navigations == ["/property/villa-rosa"]
        assert not autocomplete.is_open

    @pytest.mark.asyncio
    async def test_enter_without_highlight_runs_full_search(
        self, autocomplete: AutocompleteController, navigations
    ):
        await type_text(autocomplete, "villa")

        await autocomplete.on_key("Enter")

        assert navigations == ["/search?q=villa"]

    @pytest.mark.asyncio
    async def test_escape_closes_dropdown(self, autocomplete: AutocompleteController):
        await type_text(autocomplete, "villa")
        await autocomplete.on_key("ArrowDown")

        await autocomplete.on_key("Escape")

        assert not autocomplete.is_open
        assert autocomplete.highlighted == -1
        assert autocomplete.highlighted_suggestion is None


class TestAgainstSearchService:
    """Test the controller with the real suggestion query."""

    @pytest.mark.asyncio
    async def test_suggestions_from_catalogue(self, search_service, make_property, navigations):
        await make_property(slug="coral-bay-villa", title="Coral Bay Villa", is_featured=True)
        await make_property(slug="coral-cottage", title="Coral Cottage")
        controller = AutocompleteController(search_service, navigations.append, DEBOUNCE)

        await type_text(controller, "cor")
        await controller.on_key("ArrowDown")
        await controller.on_key("Enter")

        assert [s.slug for s in controller.suggestions] == ["coral-bay-villa", "coral-cottage"]
        assert navigations == ["/property/coral-bay-villa"]

    @pytest.mark.asyncio
    async def test_configured_controller_uses_settings(self, search_service, settings, navigations):
        controller = AutocompleteController.from_settings(search_service, navigations.append, settings)

        assert controller.min_length == settings.suggestion_min_length
        assert controller.limit == settings.suggestion_limit
        assert controller._debouncer.delay == settings.search_debounce_seconds


def test_paths():
    assert property_path("ocean-view-villa") == "/property/ocean-view-villa"
    assert search_path("beach house") == "/search?q=beach+house"
    assert search_path("") == "/search"
