"""
Sort toggle state machine

Requesting a sort on the column already sorted flips the direction;
requesting a different sortable column sorts it ascending. Columns
outside SORTABLE_COLUMNS are ignored.
"""
from dataclasses import dataclass
from typing import Optional

from helpdesk.models.schemas import OrderBy, SortDirection

# Column keys are matched case-insensitively
SORTABLE_COLUMNS = {
    "created": OrderBy.CREATED,
    "modified": OrderBy.MODIFIED,
    "duedate": OrderBy.DUE_DATE,
}


@dataclass(frozen=True)
class SortState:
    """Sorted column (None = unsorted) and its direction"""
    column: Optional[OrderBy] = None
    direction: SortDirection = SortDirection.DESC


def sortable_column(column_key: Optional[str]) -> Optional[OrderBy]:
    """Map a column key ("dueDate", "Created", ...) to its sort field"""
    if not column_key:
        return None
    return SORTABLE_COLUMNS.get(column_key.replace("_", "").lower())


def flip(direction: SortDirection) -> SortDirection:
    return SortDirection.DESC if direction == SortDirection.ASC else SortDirection.ASC


def toggle_sort(current: SortState, column_key: Optional[str]) -> Optional[SortState]:
    """
    Next sort state after the user asks to sort by ``column_key``

    Returns:
        The new SortState, or None when the column is not sortable
    """
    target = sortable_column(column_key)
    if target is None:
        return None

    if current.column == target:
        return SortState(column=target, direction=flip(current.direction))
    return SortState(column=target, direction=SortDirection.ASC)
