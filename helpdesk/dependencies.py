"""
FastAPI dependency providers

The list store is built once per process from settings; repositories
are cheap wrappers constructed per request.
"""
from functools import lru_cache

from helpdesk.config import get_settings
from helpdesk.repositories.category_repository import CategoryRepository
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.list_store import ListStore
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_list_store() -> ListStore:
    """Build the configured list store (supabase or sharepoint)"""
    settings = get_settings()
    backend = settings.list_store_backend.lower()

    if backend == "sharepoint":
        from helpdesk.services.sharepoint import SharePointListStore
        logger.info(f"Using SharePoint list store at {settings.sharepoint_site_url}")
        return SharePointListStore()

    if backend == "supabase":
        from helpdesk.services.supabase_store import SupabaseListStore
        logger.info("Using Supabase list store")
        return SupabaseListStore()

    raise ValueError(f"Unknown list store backend: {settings.list_store_backend}")


def get_ticket_repository() -> TicketRepository:
    return TicketRepository(get_list_store())


def get_category_repository() -> CategoryRepository:
    return CategoryRepository(get_list_store())
