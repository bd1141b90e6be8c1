"""Product search routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from search.service import SearchFilters, SearchRequest, SearchResponse, SearchService, SortOrder

logger = logging.getLogger(__name__)
router = APIRouter(tags=["search"])


def get_search_service(request: Request) -> SearchService:
    service = getattr(request.app.state, "search_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Search service not initialized")
    return service


@router.post("/api/products/search", response_model=SearchResponse)
async def search_products(
    body: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    return await service.search(body)


@router.get("/api/products/search", response_model=SearchResponse)
async def search_products_get(
    q: str = Query(""),
    category: Optional[str] = Query(None),
    store: Optional[str] = Query(None),
    fast_only: bool = Query(False),
    location: Optional[str] = Query(None),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    sort: SortOrder = Query("relevance"),
    service: SearchService = Depends(get_search_service),
):
    """Query-string variant of the search endpoint, same response shape."""
    body = SearchRequest(
        query=q,
        filters=SearchFilters(category=category, store=store, fast_only=fast_only, location=location),
        page=page,
        page_size=page_size,
        sort=sort,
    )
    return await service.search(body)
