"""
pytest configuration and shared fixtures

Provides an in-memory list store that evaluates the same clauses the
real adapters receive, so repository and route tests run end to end
without a backend.
"""
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import pytest

from helpdesk.exceptions import ListStoreError
from helpdesk.repositories.category_repository import CategoryRepository
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.list_store import AnyOf, FilterClause, ListQuery, Op, Record

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

# Relation alias -> (list name, foreign key)
FAKE_RELATIONS: Dict[str, Tuple[str, str]] = {
    "requester": ("People", "requester_id"),
    "approver": ("People", "approver_id"),
    "assigned_to": ("People", "assigned_to_id"),
    "category": ("Categories", "category_id"),
}


def _matches(record: Record, clause) -> bool:
    if isinstance(clause, AnyOf):
        return any(_matches(record, c) for c in clause.clauses)

    value = record.get(clause.field)
    if clause.op == Op.EQ:
        return value == clause.value
    if clause.op == Op.CONTAINS:
        return str(clause.value).lower() in (value or "").lower()
    if value is None:
        return False
    if clause.op == Op.GE:
        return value >= clause.value
    if clause.op == Op.LE:
        return value <= clause.value
    raise AssertionError(f"unsupported operator {clause.op}")


class InMemoryListStore:
    """ListStore implementation over plain dicts"""

    def __init__(self):
        self.lists: Dict[str, Dict[int, Record]] = {}
        self.calls: List[Tuple[str, ListQuery]] = []
        self._next_id = 0
        self._clock = BASE_TIME

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def seed(self, list_name: str, **fields) -> Record:
        """Insert a record directly, bypassing any repository"""
        self._next_id += 1
        now = self._tick()
        record = {"id": self._next_id, "created": now, "modified": now, **fields}
        self.lists.setdefault(list_name, {})[record["id"]] = record
        return record

    def _expand(self, record: Record, expand: Sequence[str]) -> Record:
        result = copy.deepcopy(record)
        for relation in expand:
            list_name, foreign_key = FAKE_RELATIONS[relation]
            target = self.lists.get(list_name, {}).get(record.get(foreign_key))
            if target is not None:
                result[relation] = {
                    "id": target["id"],
                    "title": target.get("title"),
                    "email": target.get("email"),
                }
        return result

    def _items(self, list_name: str) -> Dict[int, Record]:
        if list_name not in self.lists:
            raise ListStoreError(f"List '{list_name}' does not exist", status_code=404)
        return self.lists[list_name]

    async def list_items(self, list_name: str, query: ListQuery) -> List[Record]:
        self.calls.append((list_name, query))
        rows = [
            r for r in sorted(self._items(list_name).values(), key=lambda r: r["id"])
            if all(_matches(r, c) for c in query.filters)
        ]
        if query.order_by:
            rows.sort(
                key=lambda r: (r.get(query.order_by) is None, r.get(query.order_by) or 0),
                reverse=not query.ascending
            )
        if query.top is not None:
            rows = rows[:query.top]
        if tuple(query.select) == ("id",):
            return [{"id": r["id"]} for r in rows]
        return [self._expand(r, query.expand) for r in rows]

    async def get_item(
        self,
        list_name: str,
        item_id: int,
        select: Sequence[str] = (),
        expand: Sequence[str] = ()
    ) -> Record:
        record = self._items(list_name).get(item_id)
        if record is None:
            raise ListStoreError(f"Item {item_id} not found", status_code=404)
        return self._expand(record, expand)

    async def add_item(self, list_name: str, fields: Record) -> Record:
        self.lists.setdefault(list_name, {})
        return copy.deepcopy(self.seed(list_name, **fields))

    async def update_item(self, list_name: str, item_id: int, fields: Record) -> None:
        record = self._items(list_name).get(item_id)
        if record is None:
            raise ListStoreError(f"Item {item_id} not found", status_code=404)
        record.update(fields)
        record["modified"] = self._tick()

    async def delete_item(self, list_name: str, item_id: int) -> None:
        if self._items(list_name).pop(item_id, None) is None:
            raise ListStoreError(f"Item {item_id} not found", status_code=404)


class FailingListStore:
    """ListStore whose every call fails"""

    def __init__(self, message: str = "Service Unavailable"):
        self.message = message

    async def _fail(self, *args, **kwargs):
        raise ListStoreError(self.message, status_code=503)

    list_items = get_item = add_item = update_item = delete_item = _fail


def ticket_fields(
    title: str = "Printer jammed",
    status: str = "Approved",
    priority: str = "Medium",
    category_id: Optional[int] = 1,
    requester_id: Optional[int] = 100,
    **extra: Any
) -> Dict[str, Any]:
    return {
        "title": title,
        "description": "",
        "status": status,
        "priority": priority,
        "category_id": category_id,
        "requester_id": requester_id,
        **extra,
    }


@pytest.fixture
def store():
    """Empty store with the tickets, categories and people lists"""
    s = InMemoryListStore()
    for name in ("Tickets", "Categories", "People"):
        s.lists[name] = {}
    return s


@pytest.fixture
def seeded_store(store):
    """Store with two categories, one requester and a few tickets"""
    store.seed("Categories", title="Network")
    store.seed("Categories", title="Hardware")
    store.seed("People", title="Ada Lovelace", email="ada@example.com")
    network, hardware = 1, 2
    requester = 3

    store.seed("Tickets", **ticket_fields(
        "Router keeps rebooting", category_id=network, requester_id=requester,
        description="Office router drops every hour"))
    store.seed("Tickets", **ticket_fields(
        "Laptop screen flicker", category_id=hardware, requester_id=requester,
        priority="High"))
    store.seed("Tickets", **ticket_fields(
        "VPN access", status="Submitted", category_id=network, requester_id=requester,
        description="Need VPN for the new ROUTER config portal"))
    store.seed("Tickets", **ticket_fields(
        "Keyboard missing keys", status="Closed", category_id=hardware,
        requester_id=requester, priority="Low"))
    return store


@pytest.fixture
def ticket_repo(store):
    return TicketRepository(store)


@pytest.fixture
def category_repo(store):
    return CategoryRepository(store)


@pytest.fixture
def mock_supabase():
    """Fixture for mock Supabase client"""
    client = MagicMock()
    client.table.return_value = client
    client.select.return_value = client
    client.insert.return_value = client
    client.update.return_value = client
    client.delete.return_value = client
    client.eq.return_value = client
    client.gte.return_value = client
    client.lte.return_value = client
    client.ilike.return_value = client
    client.or_.return_value = client
    client.order.return_value = client
    client.limit.return_value = client
    client.range.return_value = client
    client.execute.return_value = MagicMock(data=[])
    return client
