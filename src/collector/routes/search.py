"""Figure search API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Header, Query, Request

from collector.search.schemas import SearchOptions, SearchResponse

if TYPE_CHECKING:
    from collector.search.selector import SearchService

router = APIRouter(prefix="/search", tags=["search"])

# Set by the upstream authentication layer
OWNER_HEADER = "X-User-Id"


def _service(request: Request) -> SearchService:
    return request.app.state.search_service


@router.get(
    "",
    response_model=SearchResponse,
    summary="Search the caller's collection",
    description="Every whitespace-separated term must match a searchable field.",
)
async def search(
    request: Request,
    q: str = Query(..., min_length=1, max_length=200, description="Search query string"),
    owner_id: str = Header(..., alias=OWNER_HEADER, min_length=1),
) -> SearchResponse:
    """Multi-term search over the caller's figures.

    Args:
        request: FastAPI request (provides access to app state).
        q: Search query string (1-200 characters).
        owner_id: Owner scope from the X-User-Id header.

    Returns:
        Ranked results, most relevant first.
    """
    results = await _service(request).full_search(q, owner_id)
    return SearchResponse(query=q, count=len(results), results=results)


@router.get(
    "/suggest",
    response_model=SearchResponse,
    summary="Autocomplete suggestions",
    description="Queries shorter than 3 characters return no suggestions.",
)
async def suggest(
    request: Request,
    q: str = Query(..., max_length=200, description="Partially typed query"),
    limit: int = Query(default=10, ge=1, le=50, description="Maximum suggestions"),
    owner_id: str = Header(..., alias=OWNER_HEADER, min_length=1),
) -> SearchResponse:
    results = await _service(request).word_wheel(q, owner_id, limit)
    return SearchResponse(query=q, count=len(results), results=results)


@router.get(
    "/partial",
    response_model=SearchResponse,
    summary="Substring search",
    description="Matches the query anywhere inside a field; minimum 3 characters.",
)
async def partial(
    request: Request,
    q: str = Query(..., max_length=200, description="Substring to look for"),
    limit: int = Query(default=10, ge=1, le=50, description="Results per page"),
    offset: int = Query(default=0, ge=0, description="Results to skip"),
    owner_id: str = Header(..., alias=OWNER_HEADER, min_length=1),
) -> SearchResponse:
    options = SearchOptions(limit=limit, offset=offset)
    results = await _service(request).partial(q, owner_id, options)
    return SearchResponse(query=q, count=len(results), results=results)


@router.get(
    "/public",
    response_model=SearchResponse,
    response_model_exclude={"results": {"__all__": {"owner_id"}}},
    summary="Search every collection",
    description="Unauthenticated catalog search; results carry no owner ids.",
)
async def public(
    request: Request,
    q: str = Query(..., min_length=1, max_length=200, description="Search query string"),
    limit: int = Query(default=20, ge=1, le=50, description="Results per page"),
    offset: int = Query(default=0, ge=0, description="Results to skip"),
) -> SearchResponse:
    options = SearchOptions(limit=limit, offset=offset)
    results = await _service(request).public_search(q, options)
    return SearchResponse(query=q, count=len(results), results=results)
