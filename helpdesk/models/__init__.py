"""
Pydantic models for the Helpdesk ticket service
"""

from helpdesk.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    ApprovalOutcome,
    OrderBy,
    SortDirection,
    DueState,

    # Domain Models
    Ticket,
    TicketDraft,
    TicketPatch,

    # Query Models
    TicketQuery,
    TicketSearchResult,
    CategoryOption,

    # Errors
    ErrorResponse,

    # Constants
    PAGE_SIZE_OPTIONS,
    DEFAULT_PAGE_SIZE,
)

__all__ = [
    "TicketStatus",
    "Priority",
    "ApprovalOutcome",
    "OrderBy",
    "SortDirection",
    "DueState",
    "Ticket",
    "TicketDraft",
    "TicketPatch",
    "TicketQuery",
    "TicketSearchResult",
    "CategoryOption",
    "ErrorResponse",
    "PAGE_SIZE_OPTIONS",
    "DEFAULT_PAGE_SIZE",
]
