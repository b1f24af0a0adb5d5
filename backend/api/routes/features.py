"""
Feature collection API route.
"""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from services.feature_data import get_default_feature_store
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)
feature_store = get_default_feature_store()


def cache_control_header() -> str:
    """Header that matches the in-process caching policy."""
    if not settings.FEATURES_CACHE_ENABLED:
        return "no-store"
    ttl = int(settings.FEATURES_TTL_SECONDS)
    return f"public, s-maxage={ttl}, stale-while-revalidate=300"


@router.get("")
def get_features():
    """Return every service layer with its features, center and bounds."""
    collection = feature_store.load()
    return JSONResponse(
        collection.to_dict(),
        headers={"Cache-Control": cache_control_header()},
    )
