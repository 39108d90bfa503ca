"""
Repositories package for list-store operations

Provides repository classes for:
- the tickets list (TicketRepository)
- the categories list (CategoryRepository)
"""
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.repositories.category_repository import CategoryRepository

__all__ = [
    "TicketRepository",
    "CategoryRepository",
]
