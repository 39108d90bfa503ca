"""
Paginator

The list store has no offset and no total count, so a page is served by
fetching every row from the start through the end of the requested page
and slicing the tail in memory. Totals come from a separate id-only
fetch capped at COUNT_CEILING rows; above that the total undercounts and
``is_capped`` reports it.

Re-fetching from the start costs bandwidth on deep pages; once lists
outgrow the ceilings this should move to continuation tokens.
"""
import math
from dataclasses import dataclass
from typing import List, Sequence, TypeVar

MAX_PAGE_SIZE = 100
COUNT_CEILING = 5000

T = TypeVar("T")


@dataclass(frozen=True)
class PageWindow:
    """Clamped page request and the rows needed to serve it"""
    page: int
    page_size: int

    @property
    def start(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def end(self) -> int:
        return self.page * self.page_size

    @property
    def fetch_count(self) -> int:
        """Rows to fetch from the start of the ordered result"""
        return self.end


def page_window(page: int, page_size: int) -> PageWindow:
    """Clamp page to >= 1 and page_size to [1, MAX_PAGE_SIZE]"""
    page = max(1, int(page))
    page_size = min(MAX_PAGE_SIZE, max(1, int(page_size)))
    return PageWindow(page=page, page_size=page_size)


def slice_page(rows: Sequence[T], window: PageWindow) -> List[T]:
    """Visible rows for ``window`` out of a from-the-start fetch"""
    return list(rows[window.start:window.end])


def total_pages(total: int, page_size: int) -> int:
    """Number of pages for ``total`` rows (at least 1)"""
    if page_size <= 0:
        return 1
    return max(1, math.ceil(max(0, total) / page_size))


def clamp_page(page: int, pages: int) -> int:
    """Keep ``page`` within [1, pages]"""
    return max(1, min(pages, page))


def is_capped(total: int, ceiling: int = COUNT_CEILING) -> bool:
    """True when a capped count may be undercounting"""
    return total >= ceiling
