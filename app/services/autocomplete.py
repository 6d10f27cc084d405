"""
Autocomplete controller for the search box.
Fetches a handful of suggestions once input settles and supports keyboard navigation.
"""

import inspect
import logging
from typing import Any, Callable, List, Optional
from urllib.parse import urlencode

from app.config import Settings
from app.services.search import SearchService
from app.utils.async_utils import Debouncer

logger = logging.getLogger(__name__)

KEY_UP = "ArrowUp"
KEY_DOWN = "ArrowDown"
KEY_ENTER = "Enter"
KEY_ESCAPE = "Escape"

Navigator = Callable[[str], Any]


def property_path(slug: str) -> str:
    return f"/property/{slug}"


def search_path(query: str) -> str:
    return f"/search?{urlencode({'q': query})}" if query else "/search"


class AutocompleteController:
    """
    Suggestion dropdown state.

    Input shorter than the minimum length closes the dropdown without
    querying. Longer input schedules one debounced suggestion query; each
    keystroke restarts the timer. Enter opens the highlighted suggestion, or
    falls back to a full search when nothing is highlighted.
    """

    def __init__(
        self,
        search_service: SearchService,
        navigate: Navigator,
        debounce_seconds: float = 0.3,
        min_length: int = 3,
        limit: int = 5
    ):
        self.search_service = search_service
        self.navigate = navigate
        self.min_length = min_length
        self.limit = limit

        self.input_value = ""
        self.suggestions: List[Any] = []
        self.highlighted = -1
        self.is_open = False
        self.query_count = 0

        self._debouncer = Debouncer(debounce_seconds, self._fetch)

    @classmethod
    def from_settings(
        cls, search_service: SearchService, navigate: Navigator, settings: Settings
    ) -> "AutocompleteController":
        return cls(
            search_service,
            navigate,
            debounce_seconds=settings.search_debounce_seconds,
            min_length=settings.suggestion_min_length,
            limit=settings.suggestion_limit
        )

    def on_input(self, text: str) -> None:
        self.input_value = text
        self.highlighted = -1
        if len(text.strip()) < self.min_length:
            self._debouncer.cancel()
            self.suggestions = []
            self.is_open = False
            return
        self._debouncer.trigger()

    async def on_key(self, key: str) -> None:
        """Handle a navigation key from the search box."""
        if key == KEY_DOWN:
            if self.is_open and self.suggestions:
                self.highlighted = min(self.highlighted + 1, len(self.suggestions) - 1)
        elif key == KEY_UP:
            if self.is_open and self.suggestions:
                self.highlighted = max(self.highlighted - 1, -1)
        elif key == KEY_ENTER:
            await self.select()
        elif key == KEY_ESCAPE:
            self.dismiss()

    async def select(self) -> None:
        """Navigate to the highlighted suggestion, or submit a full search."""
        selected = self.highlighted_suggestion
        self._debouncer.cancel()
        self.dismiss()
        if selected is not None:
            await self._go(property_path(selected.slug))
        else:
            await self._go(search_path(self.input_value.strip()))

    def dismiss(self) -> None:
        self.is_open = False
        self.highlighted = -1

    @property
    def highlighted_suggestion(self) -> Optional[Any]:
        if self.is_open and 0 <= self.highlighted < len(self.suggestions):
            return self.suggestions[self.highlighted]
        return None

    async def _go(self, path: str) -> None:
        result = self.navigate(path)
        if inspect.isawaitable(result):
            await result

    async def _fetch(self) -> None:
        query = self.input_value.strip()
        self.query_count += 1
        suggestions = await self.search_service.get_search_suggestions(query, self.limit)

        # Input moved on while the query was in flight
        if self.input_value.strip() != query:
            return
        self.suggestions = suggestions
        self.highlighted = -1
        self.is_open = bool(suggestions)

    async def wait(self) -> None:
        await self._debouncer.wait()
