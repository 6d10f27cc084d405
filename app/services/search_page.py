"""
Search page controller.
Owns the canonical filter state, keeps it in sync with the URL query string and
re-runs the search after input settles.
"""

import inspect
import logging
from typing import Any, Callable, List, Optional

from app.config import Settings
from app.schemas.filters import FilterState, parse_query_string
from app.schemas.search import EmptyState
from app.services.search import SearchService
from app.utils.async_utils import Debouncer

logger = logging.getLogger(__name__)

UrlWriter = Callable[[str], Any]


class SearchPageController:
    """
    State machine behind the search page.

    Filter mutations and query submissions schedule one debounced URL
    replacement and one debounced re-query; bursts of changes within the
    debounce window collapse into a single write and a single query. Responses
    from superseded queries are discarded.
    """

    def __init__(
        self,
        search_service: SearchService,
        url_writer: Optional[UrlWriter] = None,
        debounce_seconds: float = 0.3
    ):
        self.search_service = search_service
        self.url_writer = url_writer

        self.filters = FilterState()
        self.query = ""
        self.query_input = ""
        self.url = ""

        self.results: List[Any] = []
        self.loading = False
        self.has_searched = False

        self.query_count = 0
        self.url_write_count = 0

        self._generation = 0
        self._url_debouncer = Debouncer(debounce_seconds, self._write_url)
        self._query_debouncer = Debouncer(debounce_seconds, self._run_query)

    @classmethod
    def from_settings(
        cls,
        search_service: SearchService,
        settings: Settings,
        url_writer: Optional[UrlWriter] = None
    ) -> "SearchPageController":
        """Build a controller using the configured debounce window."""
        return cls(search_service, url_writer, debounce_seconds=settings.search_debounce_seconds)

    async def hydrate(self, query_string: str) -> None:
        """
        Initialise state from the page URL and run the first query.
        The URL is not rewritten on hydration.
        """
        self.query, self.filters = parse_query_string(query_string or "")
        self.query_input = self.query
        self.url = self.filters.to_query_string(self.query)
        self.loading = True
        await self._run_query()

    def set_filter(self, **changes: Any) -> None:
        """Replace one or more filter dimensions."""
        self._apply(self.filters.with_changes(**changes))

    def toggle_amenity(self, amenity: str) -> None:
        self._apply(self.filters.toggle_amenity(amenity))

    def clear_filters(self) -> None:
        """Reset every filter dimension at once; the text query is kept."""
        self._apply(FilterState())

    def set_query(self, text: str) -> None:
        """Update the search box without committing it."""
        self.query_input = text

    def submit_query(self, text: Optional[str] = None) -> None:
        """Commit the search box text as the active query."""
        if text is not None:
            self.query_input = text
        committed = self.query_input.strip()
        if committed == self.query:
            return
        self.query = committed
        self._schedule()

    def _apply(self, filters: FilterState) -> None:
        if filters == self.filters:
            return
        self.filters = filters
        self._schedule()

    def _schedule(self) -> None:
        self.loading = True
        self._url_debouncer.trigger()
        self._query_debouncer.trigger()

    @property
    def empty_state(self) -> Optional[EmptyState]:
        """Empty-state affordance once a finished search returned nothing."""
        if self.loading or not self.has_searched or self.results:
            return None
        return SearchService.empty_state(self.query, self.filters)

    async def _write_url(self) -> None:
        url = self.filters.to_query_string(self.query)
        if url == self.url:
            return
        self.url = url
        self.url_write_count += 1
        if self.url_writer is not None:
            result = self.url_writer(url)
            if inspect.isawaitable(result):
                await result
        logger.debug(f"Search URL replaced with ?{url}")

    async def _run_query(self) -> None:
        self._generation += 1
        generation = self._generation
        query, filters = self.query, self.filters
        self.query_count += 1

        try:
            rows = await self.search_service.search_properties(query, filters)
        except Exception as e:
            logger.error(f"Search failed for {query!r}: {e}", exc_info=True)
            rows = []

        if generation != self._generation:
            return
        self.results = rows
        self.has_searched = True
        self.loading = self._query_debouncer.pending

    async def flush(self) -> None:
        """Run any pending URL write and query now."""
        await self._url_debouncer.flush()
        await self._query_debouncer.flush()

    async def wait_until_idle(self) -> None:
        await self._url_debouncer.wait()
        await self._query_debouncer.wait()

    def close(self) -> None:
        self._url_debouncer.cancel()
        self._query_debouncer.cancel()
