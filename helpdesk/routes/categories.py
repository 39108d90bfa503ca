"""
Category option routes
"""
from typing import List

from fastapi import APIRouter, Depends

from helpdesk.dependencies import get_category_repository
from helpdesk.exceptions import CategoryLoadError
from helpdesk.models.schemas import CategoryOption
from helpdesk.repositories.category_repository import CategoryRepository
from helpdesk.services.ticket_list import any_category_option, category_error_option
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("/options", response_model=List[CategoryOption])
async def category_options(repo: CategoryRepository = Depends(get_category_repository)):
    """
    Category filter options, led by the "All" entry

    If the categories list cannot be read, a single disabled placeholder
    is returned instead of an error.
    """
    try:
        options = await repo.get_options()
    except CategoryLoadError as e:
        logger.warning(f"Serving category placeholder: {e.message}")
        return [category_error_option()]
    return [any_category_option(), *options]
