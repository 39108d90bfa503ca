"""
Supabase List Store

Implements the ListStore protocol on Supabase (PostgREST) tables.
Logical field names are the column names; relations are embedded
through foreign-key hints (``requester:people!requester_id(...)``).

The Supabase client is synchronous; calls run in a worker thread.
The server caps every response at its "max rows" setting, so listings
are read in ranged chunks until the row cap is met or the rows run out.
"""
import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from helpdesk.config import get_settings
from helpdesk.exceptions import ListStoreError
from helpdesk.services.list_store import AnyOf, Clause, FilterClause, ListQuery, Op, Record
from helpdesk.utils.dates import to_iso_utc
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

# Relation alias -> (target table, foreign key column)
DEFAULT_RELATIONS: Dict[str, Tuple[str, str]] = {
    "requester": ("people", "requester_id"),
    "approver": ("people", "approver_id"),
    "assigned_to": ("people", "assigned_to_id"),
    "category": ("categories", "category_id"),
}


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso_utc(value)
    return value


def _like_escape(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _quote(value: str) -> str:
    """Double-quote a value for PostgREST logic trees (or=...)"""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def or_condition(clause: FilterClause) -> str:
    """Render one clause of an or=(...) group"""
    value = _column_value(clause.value)
    if clause.op == Op.CONTAINS:
        return f"{clause.field}.ilike.{_quote('*' + _like_escape(str(value)) + '*')}"
    operator = {Op.EQ: "eq", Op.GE: "gte", Op.LE: "lte"}[clause.op]
    return f"{clause.field}.{operator}.{_quote(str(value))}"


def apply_filters(builder, clauses: Sequence[Clause]):
    """Chain clauses onto a PostgREST filter builder (AND semantics)"""
    for clause in clauses:
        if isinstance(clause, AnyOf):
            builder = builder.or_(",".join(or_condition(c) for c in clause.clauses))
            continue

        value = _column_value(clause.value)
        if clause.op == Op.EQ:
            builder = builder.eq(clause.field, value)
        elif clause.op == Op.GE:
            builder = builder.gte(clause.field, value)
        elif clause.op == Op.LE:
            builder = builder.lte(clause.field, value)
        elif clause.op == Op.CONTAINS:
            builder = builder.ilike(clause.field, f"%{_like_escape(str(value))}%")
    return builder


class SupabaseListStore:
    """Supabase-backed list store"""

    def __init__(
        self,
        supabase_client=None,
        relations: Optional[Dict[str, Tuple[str, str]]] = None,
        table_names: Optional[Dict[str, str]] = None,
        chunk_rows: Optional[int] = None
    ):
        """
        Initialize store with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
            relations: Relation alias -> (table, foreign key) for expansion
            table_names: List name -> table name (default: lower-cased list name)
            chunk_rows: Rows requested per ranged read (default: server max rows)
        """
        if supabase_client is None:
            from supabase import create_client  # Lazy import for tests
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key or settings.supabase_key
            )
        else:
            self.client = supabase_client

        self.relations = relations or DEFAULT_RELATIONS
        self.table_names = table_names or {}
        self.chunk_rows = chunk_rows or settings.supabase_max_rows
        logger.info("SupabaseListStore initialized")

    def _table(self, list_name: str) -> str:
        return self.table_names.get(list_name, list_name.lower())

    def build_select(self, select: Sequence[str] = (), expand: Sequence[str] = ()) -> str:
        """
        Build a PostgREST select string

        "requester/email" style fields become embedded resources on the
        relation's foreign-key hint.
        """
        columns: List[str] = []
        embedded: Dict[str, List[str]] = {}

        for field in select:
            if "/" in field:
                relation, sub = field.split("/", 1)
                embedded.setdefault(relation, []).append(sub)
            else:
                columns.append(field)
        for relation in expand:
            embedded.setdefault(relation, [])

        parts = columns or ["*"]
        for relation, subs in embedded.items():
            if relation not in self.relations:
                raise ListStoreError(f"Unknown relation '{relation}'")
            table, foreign_key = self.relations[relation]
            parts.append(f"{relation}:{table}!{foreign_key}({','.join(subs) or '*'})")
        return ",".join(parts)

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------
    def _list_builder(self, list_name: str, query: ListQuery):
        builder = self.client.table(self._table(list_name)).select(
            self.build_select(query.select, query.expand)
        )
        builder = apply_filters(builder, query.filters)
        if query.order_by:
            builder = builder.order(query.order_by, desc=not query.ascending)
        return builder

    def _list_items(self, list_name: str, query: ListQuery) -> List[Record]:
        """
        Read matching rows in ranged chunks of at most ``chunk_rows``

        Stops on an empty chunk or once ``query.top`` rows are read; a
        short chunk does not end the read.
        """
        rows: List[Record] = []
        while query.top is None or len(rows) < query.top:
            start = len(rows)
            end = start + self.chunk_rows - 1
            if query.top is not None:
                end = min(end, query.top - 1)

            response = self._list_builder(list_name, query).range(start, end).execute()
            chunk = list(response.data or [])
            if not chunk:
                break
            rows.extend(chunk)

        logger.debug(f"Read {len(rows)} rows from {list_name}")
        return rows

    def _get_item(self, list_name: str, item_id: int, select, expand) -> Record:
        response = self.client.table(self._table(list_name))\
            .select(self.build_select(select, expand))\
            .eq("id", item_id)\
            .limit(1)\
            .execute()
        if not response.data:
            raise ListStoreError(f"Item {item_id} not found in list '{list_name}'", status_code=404)
        return response.data[0]

    def _add_item(self, list_name: str, fields: Record) -> Record:
        response = self.client.table(self._table(list_name)).insert(fields).execute()
        if not response.data:
            raise ListStoreError(f"Insert into '{list_name}' returned no row")
        return response.data[0]

    def _update_item(self, list_name: str, item_id: int, fields: Record) -> None:
        response = self.client.table(self._table(list_name))\
            .update(fields)\
            .eq("id", item_id)\
            .execute()
        if not response.data:
            raise ListStoreError(f"Item {item_id} not found in list '{list_name}'", status_code=404)

    def _delete_item(self, list_name: str, item_id: int) -> None:
        self.client.table(self._table(list_name))\
            .delete()\
            .eq("id", item_id)\
            .execute()

    async def _run(self, operation: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except ListStoreError:
            raise
        except Exception as e:
            logger.error(f"Supabase {operation} failed: {e}")
            raise ListStoreError(str(e) or e.__class__.__name__) from e

    # ------------------------------------------------------------------
    # ListStore protocol
    # ------------------------------------------------------------------
    async def list_items(self, list_name: str, query: ListQuery) -> List[Record]:
        return await self._run("list", self._list_items, list_name, query)

    async def get_item(
        self,
        list_name: str,
        item_id: int,
        select: Sequence[str] = (),
        expand: Sequence[str] = ()
    ) -> Record:
        return await self._run("get", self._get_item, list_name, item_id, select, expand)

    async def add_item(self, list_name: str, fields: Record) -> Record:
        return await self._run("insert", self._add_item, list_name, fields)

    async def update_item(self, list_name: str, item_id: int, fields: Record) -> None:
        await self._run("update", self._update_item, list_name, item_id, fields)

    async def delete_item(self, list_name: str, item_id: int) -> None:
        await self._run("delete", self._delete_item, list_name, item_id)
