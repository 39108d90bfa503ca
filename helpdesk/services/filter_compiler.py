"""
Filter Compiler

Turns a TicketQuery into AND-joined list-store clauses plus an
order-by pair. Unset query fields never produce a clause, so "filter
not applied" and "filter applied with an empty value" stay distinct.

Clauses use logical field names; ``render_odata`` renders them for
stores that take an OData ``$filter`` expression.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple

from helpdesk.models.schemas import OrderBy, SortDirection, TicketQuery
from helpdesk.services.list_store import AnyOf, Clause, FilterClause, Op
from helpdesk.utils.dates import end_of_day, start_of_day, to_iso_utc
from helpdesk.utils.odata import contains_text, odata_string

# Logical column for each sortable field
ORDER_FIELDS = {
    OrderBy.CREATED: "created",
    OrderBy.MODIFIED: "modified",
    OrderBy.DUE_DATE: "due_date",
}

TEXT_SEARCH_FIELDS = ("title", "description")


@dataclass(frozen=True)
class CompiledQuery:
    """Backend-ready filter clauses and ordering"""
    clauses: Tuple[Clause, ...]
    order_by: str
    ascending: bool


def compile_filters(query: TicketQuery) -> Tuple[Clause, ...]:
    """
    Build the conjunctive clause list for a query

    Args:
        query: Ticket query (unset fields match anything)

    Returns:
        Clauses in a stable order: status, priority, category,
        creation bounds, free text
    """
    clauses: List[Clause] = []

    if query.status:
        clauses.append(FilterClause("status", Op.EQ, query.status.value))
    if query.priority:
        clauses.append(FilterClause("priority", Op.EQ, query.priority.value))
    if query.category_id:
        clauses.append(FilterClause("category_id", Op.EQ, query.category_id))

    # Creation time only; due date is never range-filtered
    if query.date_from:
        clauses.append(FilterClause("created", Op.GE, start_of_day(query.date_from)))
    if query.date_to:
        clauses.append(FilterClause("created", Op.LE, end_of_day(query.date_to)))

    text = (query.text or "").strip()
    if text:
        needle = text.lower()
        clauses.append(AnyOf(tuple(
            FilterClause(field, Op.CONTAINS, needle) for field in TEXT_SEARCH_FIELDS
        )))

    return tuple(clauses)


def compile_query(query: TicketQuery) -> CompiledQuery:
    """Compile filters and ordering (default: created, descending)"""
    order_by = ORDER_FIELDS.get(query.order_by or OrderBy.CREATED, "created")
    direction = query.order_dir or SortDirection.DESC

    return CompiledQuery(
        clauses=compile_filters(query),
        order_by=order_by,
        ascending=direction == SortDirection.ASC,
    )


# ============================================================================
# OData rendering
# ============================================================================

def _odata_value(value) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return f"datetime'{to_iso_utc(value)}'"
    if isinstance(value, (int, float)):
        return str(value)
    return odata_string(str(value))


def _render_clause(clause: FilterClause, field_map: Mapping[str, str]) -> str:
    field = field_map.get(clause.field, clause.field)
    if clause.op == Op.CONTAINS:
        return contains_text(field, str(clause.value))
    return f"{field} {clause.op.value} {_odata_value(clause.value)}"


def render_odata(
    clauses: Sequence[Clause],
    field_map: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """
    Render clauses as an OData $filter expression

    Args:
        clauses: AND-joined clauses
        field_map: Logical -> internal field names (unmapped names pass through)

    Returns:
        Filter expression, or None when there are no clauses
    """
    field_map = field_map or {}
    parts: List[str] = []

    for clause in clauses:
        if isinstance(clause, AnyOf):
            inner = " or ".join(_render_clause(c, field_map) for c in clause.clauses)
            parts.append(f"({inner})")
        else:
            parts.append(_render_clause(clause, field_map))

    return " and ".join(parts) if parts else None
