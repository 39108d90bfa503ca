"""
Ticket API routes

The list endpoint takes the same short query keys as the list view URL
(q, status, priority, cat, from, to, ob, od, p, ps), so any link built
for the UI can be replayed here. Malformed keys fall back to defaults.
Store failures are answered with a 502 ErrorResponse by the app-level
handler in main.py.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status
from pydantic import BaseModel, Field

from helpdesk.dependencies import get_ticket_repository
from helpdesk.models.schemas import DueState, ErrorResponse, Ticket, TicketDraft, TicketPatch
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.query_state import decode_query, encode_query
from helpdesk.utils.dates import due_state
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/tickets",
    tags=["tickets"],
    responses={status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse}}
)


class TicketListItem(Ticket):
    """Ticket row with its due-date state"""
    due_state: DueState


class TicketListResponse(BaseModel):
    """One page of tickets plus the normalized query parameters"""
    items: List[TicketListItem]
    total: int
    page: int
    page_size: int
    total_pages: int
    total_capped: bool = Field(..., description="Total may be undercounted")
    query: Dict[str, str] = Field(..., description="Normalized query parameters")


class TicketCreated(BaseModel):
    id: int


class TicketMutation(BaseModel):
    id: int
    updated: List[str] = Field(default_factory=list)


def _list_item(ticket: Ticket) -> TicketListItem:
    return TicketListItem(
        **ticket.model_dump(),
        due_state=due_state(ticket.due_date),
    )


@router.get("", response_model=TicketListResponse)
async def list_tickets(
    request: Request,
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Search tickets with URL-style query parameters
    """
    query = decode_query(request.query_params)

    result = await repo.search(query)

    return TicketListResponse(
        items=[_list_item(t) for t in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        total_capped=result.total_capped,
        query=encode_query(query),
    )


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(
    ticket_id: int,
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Get ticket details with people and category expanded
    """
    return await repo.get_by_id(ticket_id)


@router.post("", response_model=TicketCreated, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    draft: TicketDraft,
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Create a draft ticket
    """
    ticket_id = await repo.create_draft(draft)
    return TicketCreated(id=ticket_id)


@router.post("/{ticket_id}/submit", response_model=TicketMutation)
async def submit_ticket(
    ticket_id: int,
    patch: Optional[TicketPatch] = Body(None),
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Submit a ticket, optionally applying last edits in the same write
    """
    await repo.submit(ticket_id, patch)
    updated = set(patch.model_dump(exclude_unset=True)) if patch else set()
    return TicketMutation(id=ticket_id, updated=sorted(updated | {"status"}))


@router.patch("/{ticket_id}", response_model=TicketMutation)
async def update_ticket(
    ticket_id: int,
    patch: TicketPatch,
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Update only the fields present in the body (null clears a field)
    """
    await repo.update(ticket_id, patch)
    return TicketMutation(id=ticket_id, updated=sorted(patch.model_dump(exclude_unset=True)))


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(
    ticket_id: int,
    repo: TicketRepository = Depends(get_ticket_repository)
):
    """
    Delete a ticket permanently
    """
    await repo.remove(ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
