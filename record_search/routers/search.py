from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..api.deps import get_search_engine
from ..core.logger import get_logger
from ..models.schemas import ErrorResponse, SearchResponse
from ..services.search_engine import SearchEngine

router = APIRouter(prefix="/search", tags=["Search"])

logger = get_logger(__name__)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=SearchResponse,
    summary="Search records",
    description=(
        "Substring/full-text search over all records, newest first, at most 50 results. "
        "With `column`, only that payload field is matched. Terms shorter than 2 characters "
        "return an empty result set."
    ),
    responses={
        200: {"description": "Search ran; results may be empty."},
        400: {"model": ErrorResponse, "description": "Invalid search term."},
        503: {"model": ErrorResponse, "description": "Database unavailable."},
    },
)
def search_records(
    term: str = Query(default="", description="Text to search for."),
    column: Optional[str] = Query(default=None, description="Restrict matching to this payload column."),
    engine: SearchEngine = Depends(get_search_engine),
) -> SearchResponse:
    results = engine.search(term, column)
    logger.info("Search served", extra={"column": column or None, "count": len(results)})
    return SearchResponse(term=term, column=column or None, count=len(results), results=results)
