"""
List store interface

The hosted list store is consumed through this protocol. Adapters
(Supabase, SharePoint) translate the logical field names and clauses
below into their own wire format and return records in the canonical
shape: snake_case keys, expanded relations as nested dicts with
``id`` / ``title`` / ``email`` keys.

The store exposes projection, relation expansion, conjunctive filters,
ordering and a row cap. It has no total count and no offset.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union


class Op(str, Enum):
    """Clause operators"""
    EQ = "eq"
    GE = "ge"
    LE = "le"
    CONTAINS = "contains"  # case-insensitive substring


@dataclass(frozen=True)
class FilterClause:
    """Single predicate over a logical field"""
    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of predicates, used as one AND-joined clause"""
    clauses: Tuple[FilterClause, ...]


Clause = Union[FilterClause, AnyOf]


@dataclass(frozen=True)
class ListQuery:
    """
    Item listing request

    Attributes:
        select: Logical fields to project; relation sub-fields as "rel/sub"
        expand: Relations to expand
        filters: AND-joined clauses
        order_by: Logical field to order by
        ascending: Sort direction
        top: Maximum rows to return (None = store default)
    """
    select: Tuple[str, ...] = ()
    expand: Tuple[str, ...] = ()
    filters: Tuple[Clause, ...] = ()
    order_by: Optional[str] = None
    ascending: bool = True
    top: Optional[int] = None


Record = Dict[str, Any]


class ListStore(Protocol):
    """Hosted list storage backend"""

    async def list_items(self, list_name: str, query: ListQuery) -> List[Record]:
        ...

    async def get_item(
        self,
        list_name: str,
        item_id: int,
        select: Sequence[str] = (),
        expand: Sequence[str] = ()
    ) -> Record:
        ...

    async def add_item(self, list_name: str, fields: Record) -> Record:
        ...

    async def update_item(self, list_name: str, item_id: int, fields: Record) -> None:
        ...

    async def delete_item(self, list_name: str, item_id: int) -> None:
        ...
