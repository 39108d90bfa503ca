"""
Query State Synchronizer

Bidirectional mapping between TicketQuery and the flat string-keyed
parameter map that lives in the URL, plus the debounced free-text
buffer that feeds it.

Features:
- Total decoding: absent or malformed parameters fall back to defaults
- Any filter or sort write resets the page to 1
- Free-text edits commit after a quiet period (single cancellable task)
- Refresh touches a cache-busting parameter without altering filters
- Listeners receive each new immutable UrlQueryState snapshot
"""
import asyncio
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.config import get_settings
from helpdesk.models.schemas import (
    DEFAULT_PAGE_SIZE,
    PAGE_SIZE_OPTIONS,
    OrderBy,
    Priority,
    SortDirection,
    TicketQuery,
    TicketStatus,
)
from helpdesk.services.paginator import clamp_page
from helpdesk.services.sort_toggle import SortState, toggle_sort
from helpdesk.utils.dates import parse_day
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

# URL parameter keys
QS_TEXT = "q"
QS_STATUS = "status"
QS_PRIORITY = "priority"
QS_CATEGORY = "cat"
QS_DATE_FROM = "from"
QS_DATE_TO = "to"
QS_ORDER_BY = "ob"
QS_ORDER_DIR = "od"
QS_PAGE = "p"
QS_PAGE_SIZE = "ps"
QS_REFRESH = "_r"

# Filter name -> parameter key, for update_filters()
FILTER_KEYS = {
    "status": QS_STATUS,
    "priority": QS_PRIORITY,
    "category_id": QS_CATEGORY,
    "date_from": QS_DATE_FROM,
    "date_to": QS_DATE_TO,
    "page_size": QS_PAGE_SIZE,
}

Params = Dict[str, str]


# ============================================================================
# Normalization (never raises)
# ============================================================================

def _to_number(value: Optional[str]) -> float:
    if value is None:
        return 0.0
    text = value.strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return math.nan


def _enum_or_none(enum_cls, value: Optional[str]):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def normalize_status(value: Optional[str]) -> Optional[TicketStatus]:
    return _enum_or_none(TicketStatus, value)


def normalize_priority(value: Optional[str]) -> Optional[Priority]:
    return _enum_or_none(Priority, value)


def normalize_order_by(value: Optional[str]) -> OrderBy:
    return _enum_or_none(OrderBy, value) or OrderBy.CREATED


def normalize_order_dir(value: Optional[str]) -> SortDirection:
    return _enum_or_none(SortDirection, value) or SortDirection.DESC


def normalize_page(value: Optional[str]) -> int:
    n = _to_number(value)
    if not math.isfinite(n):
        return 1
    return max(1, math.floor(n))


def normalize_page_size(value: Optional[str]) -> int:
    n = _to_number(value)
    if not math.isfinite(n):
        return DEFAULT_PAGE_SIZE
    size = math.floor(n)
    return size if size in PAGE_SIZE_OPTIONS else DEFAULT_PAGE_SIZE


def normalize_category_id(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    n = _to_number(value)
    if not math.isfinite(n) or n <= 0:
        return None
    return math.floor(n)


def decode_query(params: Mapping[str, str]) -> TicketQuery:
    """
    Derive a TicketQuery from URL parameters

    Args:
        params: Flat parameter map (missing keys allowed)

    Returns:
        Normalized query; never raises for malformed values
    """
    text = (params.get(QS_TEXT) or "").strip()

    return TicketQuery(
        text=text or None,
        status=normalize_status(params.get(QS_STATUS)),
        priority=normalize_priority(params.get(QS_PRIORITY)),
        category_id=normalize_category_id(params.get(QS_CATEGORY)),
        date_from=parse_day(params.get(QS_DATE_FROM)),
        date_to=parse_day(params.get(QS_DATE_TO)),
        order_by=normalize_order_by(params.get(QS_ORDER_BY)),
        order_dir=normalize_order_dir(params.get(QS_ORDER_DIR)),
        page=normalize_page(params.get(QS_PAGE)),
        page_size=normalize_page_size(params.get(QS_PAGE_SIZE)),
    )


# ============================================================================
# Encoding
# ============================================================================

def _param_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    text = str(value)
    return text or None


def set_or_delete(params: Params, key: str, value: Any) -> None:
    """Write ``value`` under ``key``, or drop the key when the value is empty"""
    text = _param_value(value)
    if text is None:
        params.pop(key, None)
    else:
        params[key] = text


def encode_query(query: TicketQuery) -> Params:
    """
    Materialize a TicketQuery as URL parameters

    Unset filters are omitted; ordering and paging are always written.
    """
    params: Params = {}
    set_or_delete(params, QS_TEXT, (query.text or "").strip())
    set_or_delete(params, QS_STATUS, query.status)
    set_or_delete(params, QS_PRIORITY, query.priority)
    set_or_delete(params, QS_CATEGORY, query.category_id)
    set_or_delete(params, QS_DATE_FROM, query.date_from)
    set_or_delete(params, QS_DATE_TO, query.date_to)
    set_or_delete(params, QS_ORDER_BY, query.order_by)
    set_or_delete(params, QS_ORDER_DIR, query.order_dir)
    set_or_delete(params, QS_PAGE, query.page)
    set_or_delete(params, QS_PAGE_SIZE, query.page_size)
    return params


def to_query_string(params: Mapping[str, str]) -> str:
    return urlencode(sorted(params.items()))


def from_query_string(query_string: str) -> Params:
    return dict(parse_qsl(query_string.lstrip("?"), keep_blank_values=False))


def default_params() -> Params:
    """Parameters written by "clear filters\""""
    return {
        QS_ORDER_BY: OrderBy.CREATED.value,
        QS_ORDER_DIR: SortDirection.DESC.value,
        QS_PAGE: "1",
        QS_PAGE_SIZE: str(DEFAULT_PAGE_SIZE),
    }


# ============================================================================
# Transitions (params in, new params out)
# ============================================================================

def with_filters(params: Mapping[str, str], **patch: Any) -> Params:
    """
    Apply filter changes and reset the page

    Only the keyword arguments given are touched; pass None or "" to
    clear a filter. Accepted names: status, priority, category_id,
    date_from, date_to, page_size.
    """
    unknown = set(patch) - set(FILTER_KEYS)
    if unknown:
        raise TypeError(f"Unknown filter(s): {', '.join(sorted(unknown))}")

    nxt = dict(params)
    for name, value in patch.items():
        set_or_delete(nxt, FILTER_KEYS[name], value)
    nxt[QS_PAGE] = "1"
    return nxt


def with_page(params: Mapping[str, str], page: int) -> Params:
    nxt = dict(params)
    nxt[QS_PAGE] = str(max(1, int(page)))
    return nxt


def with_text(params: Mapping[str, str], text: str) -> Params:
    nxt = dict(params)
    set_or_delete(nxt, QS_TEXT, (text or "").strip())
    nxt[QS_PAGE] = "1"
    return nxt


def with_sort(params: Mapping[str, str], column_key: Optional[str]) -> Optional[Params]:
    """Apply a sort request; None when the column is not sortable"""
    current = SortState(
        column=normalize_order_by(params.get(QS_ORDER_BY)),
        direction=normalize_order_dir(params.get(QS_ORDER_DIR)),
    )
    nxt_state = toggle_sort(current, column_key)
    if nxt_state is None:
        return None

    nxt = dict(params)
    nxt[QS_ORDER_BY] = nxt_state.column.value
    nxt[QS_ORDER_DIR] = nxt_state.direction.value
    nxt[QS_PAGE] = "1"
    return nxt


def with_refresh(params: Mapping[str, str]) -> Params:
    nxt = dict(params)
    nxt[QS_REFRESH] = uuid4().hex
    return nxt


# ============================================================================
# Synchronizer
# ============================================================================

class UrlQueryState(BaseModel):
    """Immutable snapshot: URL parameters plus the text-input buffer"""
    model_config = ConfigDict(frozen=True)

    params: Dict[str, str] = Field(default_factory=dict)
    text_input: str = ""

    @property
    def query(self) -> TicketQuery:
        return decode_query(self.params)

    @property
    def query_string(self) -> str:
        return to_query_string(self.params)


Listener = Callable[[UrlQueryState], None]


class QueryStateSynchronizer:
    """
    Owns the URL query state for one ticket list view.

    Every mutation produces a new UrlQueryState and notifies listeners.
    Free-text edits update ``text_input`` immediately and are committed
    to the parameters after ``debounce_seconds`` without further edits.
    Text edits must be made from inside a running event loop.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, str]] = None,
        debounce_seconds: Optional[float] = None
    ):
        params = dict(params or {})
        self._state = UrlQueryState(
            params=params,
            text_input=params.get(QS_TEXT, "")
        )
        self._debounce_seconds = (
            settings.TEXT_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self._pending: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def state(self) -> UrlQueryState:
        return self._state

    @property
    def params(self) -> Params:
        return dict(self._state.params)

    @property
    def query(self) -> TicketQuery:
        return self._state.query

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _set_state(self, state: UrlQueryState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _write_params(self, params: Params) -> None:
        self._set_state(self._state.model_copy(update={"params": params}))

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _commit_after_quiet(self, text: str) -> None:
        await asyncio.sleep(self._debounce_seconds)
        self._pending = None
        self._commit_text(text)

    def _commit_text(self, text: str) -> None:
        current = self._state.params.get(QS_TEXT, "")
        if text.strip() == current:
            return
        logger.debug(f"Committing search text: {text.strip()!r}")
        self._write_params(with_text(self._state.params, text))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def navigate(self, params: Mapping[str, str]) -> None:
        """
        Adopt parameters from an external URL change (deep link, history)

        The text input is resynchronized with the URL and any pending
        text commit is dropped.
        """
        self._cancel_pending()
        params = dict(params)
        self._set_state(UrlQueryState(params=params, text_input=params.get(QS_TEXT, "")))

    def set_text_input(self, text: str) -> None:
        """Buffer a keystroke; commit after the quiet period"""
        text = text or ""
        self._set_state(self._state.model_copy(update={"text_input": text}))
        self._cancel_pending()
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._commit_after_quiet(text))

    def flush_text(self) -> None:
        """Commit the buffered text now (e.g. on Enter)"""
        self._cancel_pending()
        self._commit_text(self._state.text_input)

    @property
    def has_pending_text(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def update_filters(self, **patch: Any) -> None:
        """Change filters (see ``with_filters``); resets the page to 1"""
        self._write_params(with_filters(self._state.params, **patch))

    def set_page(self, page: int) -> None:
        self._write_params(with_page(self._state.params, page))

    def toggle_sort(self, column_key: Optional[str]) -> bool:
        """Apply a header click; returns False for non-sortable columns"""
        nxt = with_sort(self._state.params, column_key)
        if nxt is None:
            return False
        self._write_params(nxt)
        return True

    def refresh(self) -> None:
        """Force downstream re-fetch without changing the query"""
        self._write_params(with_refresh(self._state.params))

    def clear_filters(self) -> None:
        self._cancel_pending()
        self._set_state(UrlQueryState(params=default_params(), text_input=""))

    def clamp_page(self, pages: int) -> None:
        """Pull the page back inside [1, pages] after totals are known"""
        current = normalize_page(self._state.params.get(QS_PAGE))
        clamped = clamp_page(current, pages)
        if clamped != current:
            self._write_params(with_page(self._state.params, clamped))
