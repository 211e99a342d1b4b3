"""API routes for full-text search."""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_node_manager
from ..models import ErrorResponse, SearchHit, SearchRequest, SearchResponse
from ...core.manager import NodeManager
from ...models.node import SearchOptions, SearchResult

router = APIRouter(
    prefix="/search",
    tags=["search"],
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


def _to_response(query: str, results: List[SearchResult]) -> SearchResponse:
    hits = [
        SearchHit(node=r.node, score=r.score, matched_terms=r.matched_terms)
        for r in results
    ]
    return SearchResponse(results=hits, query=query, total=len(hits))


@router.post(
    "",
    response_model=SearchResponse,
    summary="Search nodes",
    description="Ranked keyword search over node text and tags",
)
async def search_nodes(
    request: SearchRequest,
    manager: NodeManager = Depends(get_node_manager),
) -> SearchResponse:
    """Search with full options."""
    results = await manager.search(
        SearchOptions(
            query=request.query,
            limit=request.limit,
            fuzzy=request.fuzzy,
            min_score=request.min_score,
        )
    )
    return _to_response(request.query, results)


@router.get(
    "",
    response_model=SearchResponse,
    summary="Quick search",
    description="Search with default options",
)
async def quick_search(
    q: str = Query(..., min_length=1, description="Search query"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of results"),
    manager: NodeManager = Depends(get_node_manager),
) -> SearchResponse:
    """Search via query parameters."""
    results = await manager.search(SearchOptions(query=q, limit=limit))
    return _to_response(q, results)
