"""
Category Repository

Reads (id, title) pairs from the categories list for the category
filter dropdown, ordered alphabetically and capped.
"""
from typing import List, Optional

from helpdesk.config import get_settings
from helpdesk.exceptions import CategoryLoadError
from helpdesk.models.schemas import CategoryOption
from helpdesk.services.list_store import ListQuery, ListStore
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class CategoryRepository:
    """Repository for the categories list"""

    def __init__(
        self,
        store: ListStore,
        list_name: Optional[str] = None,
        limit: Optional[int] = None
    ):
        self.store = store
        self.list_name = list_name or settings.categories_list
        self.limit = limit or settings.category_options_limit

    async def get_options(self) -> List[CategoryOption]:
        """
        Category options ordered by title

        Raises:
            CategoryLoadError: If the list cannot be read
        """
        try:
            rows = await self.store.list_items(
                self.list_name,
                ListQuery(
                    select=("id", "title"),
                    order_by="title",
                    ascending=True,
                    top=self.limit,
                )
            )
            return [
                CategoryOption(key=row["id"], text=row.get("title") or "")
                for row in rows
            ]

        except Exception as e:
            logger.error(f"Failed to load categories: {e}")
            raise CategoryLoadError(f"Failed to load categories: {e}") from e
