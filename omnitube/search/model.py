"""Search state: query editing, debounced lookups, results and favorites.

Typing updates ``query_text``; suggestions follow after a short quiet
period and, on backends with search filters, the live query follows after a
longer one. Submitting or clearing the text applies the query at once and
cancels the pending live update. Filter changes apply immediately.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum

from omnitube.accounts import AccountsModel
from omnitube.errors import OmnitubeError
from omnitube.models import ContentItem, SearchDate, SearchDuration, SearchQuery, SortOrder
from omnitube.observable import Observable
from omnitube.search.debounce import Debounce
from omnitube.search.recents import RecentsModel

logger = logging.getLogger(__name__)

SUGGESTIONS_DELAY = 0.3
QUERY_DELAY = 2.0


class SearchState(Enum):
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class FavoriteItem:
    """Bookmarkable descriptor of a search (text plus filter values)."""
    id: str
    query: SearchQuery

    @classmethod
    def for_query(cls, query: SearchQuery) -> "FavoriteItem":
        return cls(id=query.favorite_id, query=query)


class SearchModel:
    """Drives searches against the active backend."""

    def __init__(
        self,
        accounts: AccountsModel,
        recents: RecentsModel,
        suggestions_delay: float = SUGGESTIONS_DELAY,
        query_delay: float = QUERY_DELAY,
    ):
        self.accounts = accounts
        self.recents = recents

        self.query_text: Observable[str] = Observable("")
        self.query: Observable[SearchQuery] = Observable(SearchQuery(), notify_unchanged=True)
        self.items: Observable[list[ContentItem]] = Observable([])
        self.suggestions: Observable[list[str]] = Observable([])
        self.state: Observable[SearchState] = Observable(SearchState.IDLE)
        self.favorite_item: Observable[FavoriteItem | None] = Observable(None)
        self.is_loading: Observable[bool] = Observable(False)

        self._suggestions_debounce = Debounce(suggestions_delay)
        self._query_debounce = Debounce(query_delay)
        self._search_generation = 0
        self._suggestions_generation = 0
        self._search_task: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Text input
    # -------------------------------------------------------------------------

    def set_query_text(self, text: str) -> None:
        """Handle a keystroke in the search field."""
        self.query_text.set(text)

        if not text:
            self._suggestions_debounce.invalidate()
            self._query_debounce.invalidate()
            self.suggestions.set([])
            self.state.set(SearchState.IDLE)
            self.change_query(query="")
            return

        self.state.set(SearchState.EDITING)
        self._suggestions_debounce.debouncing(lambda: self.load_suggestions(text))
        if self.accounts.api.supports_search_filters:
            self._query_debounce.debouncing(lambda: self.change_query(query=text))

    def submit(self, text: str | None = None) -> None:
        """Apply the current text now and remember it in recents."""
        if text is not None:
            self.query_text.set(text)
        text = self.query_text.value

        self._query_debounce.invalidate()
        self.change_query(query=text)
        self.recents.add_query(text)
        self.state.set(SearchState.SUBMITTED)

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def set_sort_order(self, sort_by: SortOrder) -> None:
        self.change_query(sort_by=sort_by)

    def set_date(self, date: SearchDate) -> None:
        self.change_query(date=date)

    def set_duration(self, duration: SearchDuration) -> None:
        self.change_query(duration=duration)

    @property
    def filters_active(self) -> bool:
        query = self.query.value
        return query.duration != SearchDuration.ANY or query.date != SearchDate.ANY

    def reset_filters(self) -> None:
        self.change_query(sort_by=SortOrder.RELEVANCE, date=SearchDate.ANY, duration=SearchDuration.ANY)

    # -------------------------------------------------------------------------
    # Query and results
    # -------------------------------------------------------------------------

    def change_query(self, **changes) -> None:
        self.reset_query(dataclasses.replace(self.query.value, **changes))

    def reset_query(self, query: SearchQuery | None = None) -> None:
        """Make ``query`` (default: an empty query) active and search for it."""
        query = query or SearchQuery()
        self._search_generation += 1
        self.query.set(query)
        self.favorite_item.set(None if query.is_empty else FavoriteItem.for_query(query))
        self.items.set([])

        if query.is_empty:
            self.is_loading.set(False)
            return

        self.is_loading.set(True)
        self._search_task = asyncio.ensure_future(
            self._load(query, self._search_generation, self.accounts.generation)
        )

    async def _load(self, query: SearchQuery, generation: int, account_generation: int) -> None:
        api = self.accounts.api
        try:
            items = await api.search(query)
        except OmnitubeError as e:
            logger.warning(f"Search for {query.query!r} failed: {e}")
            items = []
        except Exception as e:
            logger.error(f"Search for {query.query!r} failed unexpectedly: {e}", exc_info=True)
            items = []

        if generation != self._search_generation:
            logger.debug(f"Discarding results of superseded search {query.query!r}")
            return
        if account_generation != self.accounts.generation:
            # still the latest search, so it owns the loading flag
            logger.debug(f"Discarding results of {query.query!r} from a previous account")
            self.is_loading.set(False)
            return

        self.items.set(items)
        self.is_loading.set(False)

    async def settle(self) -> None:
        """Wait for the latest search to finish."""
        if self._search_task is not None:
            await self._search_task

    @property
    def no_results(self) -> bool:
        return not self.items.value and not self.is_loading.value and not self.query.value.is_empty

    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------

    async def load_suggestions(self, text: str) -> None:
        if not text.strip():
            self.suggestions.set([])
            return

        self._suggestions_generation += 1
        generation = self._suggestions_generation
        try:
            suggestions = await self.accounts.api.search_suggestions(text)
        except OmnitubeError as e:
            logger.debug(f"Suggestions for {text!r} failed: {e}")
            suggestions = []
        except Exception as e:
            logger.error(f"Suggestions for {text!r} failed unexpectedly: {e}", exc_info=True)
            suggestions = []

        if generation != self._suggestions_generation or text != self.query_text.value:
            return
        self.suggestions.set(suggestions)
