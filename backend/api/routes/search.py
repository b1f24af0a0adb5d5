"""
Address search API route.
"""
import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from domain.errors import LoadFailure
from services.address_index import get_default_address_index_store
from services.search_matcher import is_query_too_short, search_addresses

router = APIRouter()
logger = logging.getLogger(__name__)
address_index_store = get_default_address_index_store()

SEARCH_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"


class SearchResultResponse(BaseModel):
    logradouro: str
    centroid: Tuple[float, float]
    setor: str
    name: str
    subprefeitura: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[SearchResultResponse]


@router.get("", response_model=SearchResponse)
def search(q: Optional[str] = None):
    """Autocomplete street names against the address index."""
    if is_query_too_short(q):
        return SearchResponse(results=[])

    try:
        index = address_index_store.get()
        results = search_addresses(index, q)
    except LoadFailure as e:
        logger.error("Search unavailable, address index failed to load: %s", e)
        return JSONResponse({"error": "Failed to process search"}, status_code=500)
    except Exception:
        logger.exception("Search failed for q=%r", q)
        return JSONResponse({"error": "Failed to process search"}, status_code=500)

    payload = SearchResponse(results=[SearchResultResponse(**r.to_dict()) for r in results])
    return JSONResponse(
        payload.model_dump(),
        headers={"Cache-Control": SEARCH_CACHE_CONTROL},
    )
