"""
Ticket Repository

Features:
- Draft creation, submission, partial update, delete, fetch by id
- Two-phase search: capped from-the-start fetch sliced to the page,
  plus a capped id-only count for the total
- Mapping of raw list-store records into Ticket models

Every operation wraps store failures in TicketRepositoryError with an
operation-specific message. There is no retry.
"""
from typing import Any, Dict, Optional

from helpdesk.config import get_settings
from helpdesk.exceptions import TicketRepositoryError
from helpdesk.models.schemas import (
    Ticket,
    TicketDraft,
    TicketPatch,
    TicketQuery,
    TicketSearchResult,
    TicketStatus,
    Priority,
)
from helpdesk.services.filter_compiler import compile_query
from helpdesk.services.list_store import ListQuery, ListStore, Record
from helpdesk.services.paginator import is_capped, page_window, slice_page, total_pages
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

TICKET_SELECT = (
    "id",
    "title",
    "description",
    "category_id",
    "category/id",
    "category/title",
    "priority",
    "status",
    "requester_id",
    "requester/id",
    "requester/title",
    "requester/email",
    "approver_id",
    "approver/id",
    "approver/title",
    "approver/email",
    "assigned_to_id",
    "assigned_to/id",
    "assigned_to/title",
    "assigned_to/email",
    "sla_hours",
    "due_date",
    "resolution_date",
    "last_approval_outcome",
    "ticket_number",
    "created",
    "modified",
)

TICKET_EXPAND = ("requester", "approver", "assigned_to", "category")


def _relation(record: Record, name: str) -> Dict[str, Any]:
    value = record.get(name)
    return value if isinstance(value, dict) else {}


def _first(*values, default=None):
    """First value that is not None"""
    for value in values:
        if value is not None:
            return value
    return default


def _enum_or_default(enum_cls, value, default, record: Record):
    """Enum member for ``value``; missing or unrecognised values give ``default``"""
    if not value:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            f"Ticket {record.get('id')}: unknown {enum_cls.__name__} '{value}', "
            f"using '{default.value}'"
        )
        return default


def map_record(record: Record) -> Ticket:
    """
    Map a canonical list-store record to a Ticket

    Related ids fall back from the expanded object to the flat foreign
    key, then to 0 (required) or None (optional). Missing or unknown
    status and priority values default to Draft and Low.
    """
    category = _relation(record, "category")
    requester = _relation(record, "requester")
    approver = _relation(record, "approver")
    assigned_to = _relation(record, "assigned_to")

    return Ticket(
        id=record["id"],
        title=record.get("title") or "",
        description=record.get("description") or "",

        category_id=_first(category.get("id"), record.get("category_id"), default=0),
        category_title=category.get("title"),

        priority=_enum_or_default(Priority, record.get("priority"), Priority.LOW, record),
        status=_enum_or_default(TicketStatus, record.get("status"), TicketStatus.DRAFT, record),

        requester_id=_first(requester.get("id"), record.get("requester_id"), default=0),
        requester_title=requester.get("title"),
        requester_email=requester.get("email"),

        approver_id=_first(approver.get("id"), record.get("approver_id")),
        approver_title=approver.get("title"),
        approver_email=approver.get("email"),

        assigned_to_id=_first(assigned_to.get("id"), record.get("assigned_to_id")),
        assigned_to_title=assigned_to.get("title"),
        assigned_to_email=assigned_to.get("email"),

        sla_hours=record.get("sla_hours"),
        due_date=record.get("due_date"),
        resolution_date=record.get("resolution_date"),

        last_approval_outcome=record.get("last_approval_outcome"),
        ticket_number=record.get("ticket_number"),

        created=record.get("created"),
        modified=record.get("modified"),
    )


def build_payload(patch: Optional[TicketPatch]) -> Dict[str, Any]:
    """Write payload holding only the fields explicitly set on ``patch``"""
    if patch is None:
        return {}
    return patch.model_dump(mode="json", exclude_unset=True)


class TicketRepository:
    """Repository for the tickets list"""

    def __init__(
        self,
        store: ListStore,
        list_name: Optional[str] = None,
        count_ceiling: Optional[int] = None
    ):
        """
        Initialize repository

        Args:
            store: List store holding the tickets list
            list_name: Tickets list name (default from settings)
            count_ceiling: Row cap for the approximate total
        """
        self.store = store
        self.list_name = list_name or settings.tickets_list
        self.count_ceiling = count_ceiling or settings.search_count_ceiling
        logger.debug(f"TicketRepository initialized for list: {self.list_name}")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create_draft(self, draft: TicketDraft) -> int:
        """
        Create a ticket in Draft status

        Args:
            draft: Ticket fields (any status supplied is ignored)

        Returns:
            Id of the created ticket
        """
        try:
            payload = draft.model_dump(mode="json")
            payload["status"] = TicketStatus.DRAFT.value

            created = await self.store.add_item(self.list_name, payload)
            ticket_id = created.get("id")
            if ticket_id is None:
                raise ValueError("store returned no id for the new item")

            logger.info(f"Created draft ticket: {ticket_id}")
            return int(ticket_id)

        except Exception as e:
            logger.error(f"Failed to create draft ticket: {e}")
            raise TicketRepositoryError(
                "create_draft",
                f"Failed to create draft ticket: {e}",
                cause=e
            ) from e

    async def submit(self, ticket_id: int, patch: Optional[TicketPatch] = None) -> None:
        """
        Apply an optional patch and move the ticket to Submitted

        The status change travels in the same write as the patch.
        """
        try:
            payload = {**build_payload(patch), "status": TicketStatus.SUBMITTED.value}
            await self.store.update_item(self.list_name, ticket_id, payload)
            logger.info(f"Submitted ticket: {ticket_id}")

        except Exception as e:
            logger.error(f"Failed to submit ticket {ticket_id}: {e}")
            raise TicketRepositoryError(
                "submit",
                f"Failed to submit ticket {ticket_id}: {e}",
                ticket_id=ticket_id,
                cause=e
            ) from e

    async def update(self, ticket_id: int, patch: TicketPatch) -> None:
        """
        Write the fields explicitly set on ``patch``

        Fields set to None are cleared; fields never set are untouched.
        """
        try:
            payload = build_payload(patch)
            await self.store.update_item(self.list_name, ticket_id, payload)
            logger.info(f"Updated ticket {ticket_id}: {sorted(payload)}")

        except Exception as e:
            logger.error(f"Failed to update ticket {ticket_id}: {e}")
            raise TicketRepositoryError(
                "update",
                f"Failed to update ticket {ticket_id}: {e}",
                ticket_id=ticket_id,
                cause=e
            ) from e

    async def remove(self, ticket_id: int) -> None:
        """Delete a ticket permanently"""
        try:
            await self.store.delete_item(self.list_name, ticket_id)
            logger.info(f"Deleted ticket: {ticket_id}")

        except Exception as e:
            logger.error(f"Failed to delete ticket {ticket_id}: {e}")
            raise TicketRepositoryError(
                "remove",
                f"Failed to delete ticket {ticket_id}: {e}",
                ticket_id=ticket_id,
                cause=e
            ) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_by_id(self, ticket_id: int) -> Ticket:
        """
        Fetch one ticket with people and category expanded

        Not-found is reported like any other fetch failure.
        """
        try:
            record = await self.store.get_item(
                self.list_name,
                ticket_id,
                select=TICKET_SELECT,
                expand=TICKET_EXPAND
            )
            return map_record(record)

        except Exception as e:
            logger.error(f"Failed to fetch ticket {ticket_id}: {e}")
            raise TicketRepositoryError(
                "get_by_id",
                f"Failed to fetch ticket {ticket_id}: {e}",
                ticket_id=ticket_id,
                cause=e
            ) from e

    async def _count_rows(self, query: TicketQuery) -> int:
        compiled = compile_query(query)
        rows = await self.store.list_items(
            self.list_name,
            ListQuery(select=("id",), filters=compiled.clauses, top=self.count_ceiling)
        )
        return len(rows)

    async def count(self, query: TicketQuery) -> int:
        """
        Approximate number of tickets matching ``query``

        Counts the rows of an id-only fetch capped at ``count_ceiling``;
        larger result sets are undercounted.
        """
        try:
            return await self._count_rows(query)

        except Exception as e:
            logger.error(f"Failed to count tickets: {e}")
            raise TicketRepositoryError(
                "count",
                f"Failed to count tickets: {e}",
                cause=e
            ) from e

    async def search(self, query: TicketQuery) -> TicketSearchResult:
        """
        Search tickets and return one page

        Args:
            query: Ticket query (page and page_size are clamped)

        Returns:
            TicketSearchResult with the visible page and approximate total
        """
        try:
            window = page_window(query.page, query.page_size)
            compiled = compile_query(query)

            # Phase 1: rows from the start through the end of the page
            rows = await self.store.list_items(
                self.list_name,
                ListQuery(
                    select=TICKET_SELECT,
                    expand=TICKET_EXPAND,
                    filters=compiled.clauses,
                    order_by=compiled.order_by,
                    ascending=compiled.ascending,
                    top=window.fetch_count,
                )
            )
            items = [map_record(row) for row in slice_page(rows, window)]

            # Phase 2: capped id-only count with the same filters
            total = await self._count_rows(query)

            logger.info(
                f"Search page {window.page} (size {window.page_size}): "
                f"{len(items)} items, total {total}"
            )
            return TicketSearchResult(
                items=items,
                total=total,
                page=window.page,
                page_size=window.page_size,
                total_pages=total_pages(total, window.page_size),
                total_capped=is_capped(total, self.count_ceiling),
            )

        except Exception as e:
            logger.error(f"Failed to search tickets: {e}")
            raise TicketRepositoryError(
                "search",
                f"Failed to search tickets: {e}",
                cause=e
            ) from e
