"""
Pydantic models for the Helpdesk ticket service

This module contains the domain schemas shared by the query engine,
the repositories and the HTTP routes.

- Ticket: domain shape mapped from raw list-store records
- TicketDraft / TicketPatch: mutation inputs (patch keeps set/unset distinction)
- TicketQuery: declarative search query with total defaults
- TicketSearchResult: one page of tickets plus the approximate total
"""
from datetime import datetime, date
from enum import Enum
from typing import Optional, List, Union

from pydantic import BaseModel, Field, ConfigDict, computed_field


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses"""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    PENDING_APPROVAL = "PendingApproval"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Priority(str, Enum):
    """Ticket priorities"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class ApprovalOutcome(str, Enum):
    """Outcome of the most recent approval round"""
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class OrderBy(str, Enum):
    """Sortable ticket columns"""
    CREATED = "Created"
    MODIFIED = "Modified"
    DUE_DATE = "DueDate"


class SortDirection(str, Enum):
    """Sort direction"""
    ASC = "asc"
    DESC = "desc"


class DueState(str, Enum):
    """Due-date urgency relative to today"""
    NONE = "none"
    SOON = "soon"
    OVERDUE = "overdue"


PAGE_SIZE_OPTIONS = (10, 20, 50, 100)
DEFAULT_PAGE_SIZE = 20


# ============================================================================
# Domain Models
# ============================================================================

class Ticket(BaseModel):
    """
    Helpdesk ticket as seen by callers.

    Person and category fields are denormalized from related records at
    read time; they are display-only and never written back.

    Attributes:
        id: List item identity
        title: Short summary
        description: Free-text description
        category_id: Category lookup id (0 when the record has none)
        category_title: Category display title
        priority: Ticket priority
        status: Lifecycle status
        requester_id: Requesting person (0 when the record has none)
        approver_id: Approving person (optional)
        assigned_to_id: Assignee (optional)
        sla_hours: Service level target in hours (optional)
        due_date: Due timestamp (optional)
        resolution_date: Resolution timestamp (optional)
        last_approval_outcome: Outcome of the last approval (optional)
        ticket_number: Human-facing ticket number (optional)
        created: Creation timestamp assigned by the store
        modified: Last modification timestamp assigned by the store
    """
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Ticket id")
    title: str = Field("", description="Title")
    description: str = Field("", description="Description")

    category_id: int = Field(0, description="Category id")
    category_title: Optional[str] = Field(None, description="Category title")

    priority: Priority = Field(Priority.LOW, description="Priority")
    status: TicketStatus = Field(TicketStatus.DRAFT, description="Status")

    requester_id: int = Field(0, description="Requester id")
    requester_title: Optional[str] = None
    requester_email: Optional[str] = None

    approver_id: Optional[int] = None
    approver_title: Optional[str] = None
    approver_email: Optional[str] = None

    assigned_to_id: Optional[int] = None
    assigned_to_title: Optional[str] = None
    assigned_to_email: Optional[str] = None

    sla_hours: Optional[float] = None
    due_date: Optional[datetime] = None
    resolution_date: Optional[datetime] = None

    last_approval_outcome: Optional[ApprovalOutcome] = None
    ticket_number: Optional[str] = None

    created: Optional[datetime] = None
    modified: Optional[datetime] = None

    @computed_field
    @property
    def display_number(self) -> str:
        """Ticket number, or the item id when none was assigned"""
        return self.ticket_number or f"#{self.id}"


class TicketDraft(BaseModel):
    """
    Input for creating a draft ticket.

    Unknown keys (including any caller-supplied status) are ignored;
    new tickets always start as Draft.
    """
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category_id: int = Field(..., ge=1)
    priority: Priority = Priority.LOW
    requester_id: int = Field(..., ge=1)

    approver_id: Optional[int] = None
    assigned_to_id: Optional[int] = None

    sla_hours: Optional[float] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    ticket_number: Optional[str] = Field(None, max_length=255)


class TicketPatch(BaseModel):
    """
    Partial ticket update.

    Only fields explicitly present are written: a field set to None clears
    the stored value, a field never set is left untouched. Use
    ``model_dump(exclude_unset=True)`` to read the requested changes.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    priority: Optional[Priority] = None
    status: Optional[TicketStatus] = None

    requester_id: Optional[int] = None
    approver_id: Optional[int] = None
    assigned_to_id: Optional[int] = None

    sla_hours: Optional[float] = None
    due_date: Optional[datetime] = None
    resolution_date: Optional[datetime] = None

    last_approval_outcome: Optional[ApprovalOutcome] = None
    ticket_number: Optional[str] = None


# ============================================================================
# Query Models
# ============================================================================

class TicketQuery(BaseModel):
    """
    Declarative ticket query.

    Every field has a default; an unset filter means "match any".
    Dates are calendar days bounding the creation timestamp.
    """
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    status: Optional[TicketStatus] = None
    category_id: Optional[int] = None
    priority: Optional[Priority] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    order_by: OrderBy = OrderBy.CREATED
    order_dir: SortDirection = SortDirection.DESC

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


class TicketSearchResult(BaseModel):
    """
    One page of search results.

    ``total`` comes from a capped count; when ``total_capped`` is true the
    real number of matches may be larger.
    """
    items: List[Ticket] = Field(default_factory=list)
    total: int = Field(0, ge=0, description="Approximate number of matches")
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)
    total_pages: int = Field(1, ge=1)
    total_capped: bool = Field(False, description="Total hit the count ceiling")


class CategoryOption(BaseModel):
    """Category dropdown option ("" key selects any category)"""
    key: Union[int, str]
    text: str
    disabled: bool = False


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    operation: Optional[str] = Field(None, description="Failed repository operation")
    ticket_id: Optional[int] = Field(None, description="Ticket involved, if any")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
