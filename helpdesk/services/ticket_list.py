"""
Ticket list session

Drives one ticket list view: re-runs the search whenever the URL
parameters change, keeps the visible page and totals, and loads the
category options.

Searches are never cancelled. A result that resolves after the
parameters moved on, or after the session was closed, is discarded.
"""
import asyncio
from typing import Callable, List, Optional, Set

from helpdesk.exceptions import CategoryLoadError, TicketRepositoryError
from helpdesk.models.schemas import CategoryOption, Ticket
from helpdesk.repositories.category_repository import CategoryRepository
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.paginator import total_pages
from helpdesk.services.query_state import Params, QueryStateSynchronizer, UrlQueryState
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)

ANY_CATEGORY_TEXT = "All"
CATEGORY_ERROR_TEXT = "All (failed to load)"


def any_category_option() -> CategoryOption:
    return CategoryOption(key="", text=ANY_CATEGORY_TEXT)


def category_error_option() -> CategoryOption:
    return CategoryOption(key="", text=CATEGORY_ERROR_TEXT, disabled=True)


class TicketListSession:
    """State of one ticket list view bound to a QueryStateSynchronizer"""

    def __init__(
        self,
        synchronizer: QueryStateSynchronizer,
        tickets: TicketRepository,
        categories: Optional[CategoryRepository] = None
    ):
        self.sync = synchronizer
        self.tickets = tickets
        self.categories = categories

        self.items: List[Ticket] = []
        self.total: int = 0
        self.total_capped: bool = False
        self.error: Optional[str] = None
        self.loading: bool = False
        self.category_options: List[CategoryOption] = [any_category_option()]

        self._alive = True
        self._watched_params: Optional[Params] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def page_size(self) -> int:
        return self.sync.query.page_size

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.page_size)

    @property
    def page(self) -> int:
        return min(self.sync.query.page, self.total_pages)

    @property
    def can_prev(self) -> bool:
        return self.page > 1

    @property
    def can_next(self) -> bool:
        return self.page < self.total_pages

    def _is_current(self, params: Params) -> bool:
        return self._alive and params == self.sync.params

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> asyncio.Task:
        """Watch parameter changes and run the first search"""
        self._unsubscribe = self.sync.subscribe(self._on_state)
        self._watched_params = self.sync.params
        return self._schedule(self.load())

    def close(self) -> None:
        """Stop watching; results still in flight are discarded"""
        self._alive = False
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_idle(self) -> None:
        """Wait for scheduled searches to settle"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_state(self, state: UrlQueryState) -> None:
        # Text-input keystrokes change the snapshot but not the parameters
        if state.params == self._watched_params:
            return
        self._watched_params = dict(state.params)
        self._schedule(self.load())

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def load(self) -> bool:
        """
        Search with the current parameters

        Returns:
            True if the result was applied, False if it failed or was stale
        """
        params = self.sync.params
        query = self.sync.query
        self.loading = True
        self.error = None

        try:
            result = await self.tickets.search(query)
        except TicketRepositoryError as e:
            if not self._is_current(params):
                logger.debug("Discarding failure of a superseded search")
                return False
            self.items = []
            self.total = 0
            self.total_capped = False
            self.error = e.message
            self.loading = False
            return False

        if not self._is_current(params):
            logger.debug("Discarding result of a superseded search")
            return False

        self.items = result.items
        self.total = result.total
        self.total_capped = result.total_capped
        self.loading = False

        self.sync.clamp_page(result.total_pages)
        return True

    async def load_categories(self) -> List[CategoryOption]:
        """
        Load category dropdown options

        A failure degrades to a single disabled placeholder; ticket
        search is unaffected.
        """
        if self.categories is None:
            return self.category_options

        try:
            options = [any_category_option(), *await self.categories.get_options()]
        except CategoryLoadError as e:
            logger.warning(f"Category options unavailable: {e.message}")
            options = [category_error_option()]

        if self._alive:
            self.category_options = options
        return options

    async def remove(self, ticket_id: int) -> bool:
        """
        Delete a ticket and refresh the list

        On failure the current items stay and the error is surfaced.
        """
        try:
            await self.tickets.remove(ticket_id)
        except TicketRepositoryError as e:
            self.error = e.message
            return False

        self.sync.refresh()
        return True
