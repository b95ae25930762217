"""Search API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chat_workspace.api.dependencies import get_search_aggregator, get_user_lookup
from chat_workspace.models.dto import CategorizedSearchResults, SearchRequest
from chat_workspace.search.aggregator import SearchAggregator
from chat_workspace.users.lookup import UserLookup

router = APIRouter()


@router.post(
    "/search",
    response_model=CategorizedSearchResults,
    response_model_by_alias=True,
    summary="Search messages, direct messages, channels, threads and users",
)
async def run_search(
    request: SearchRequest,
    aggregator: SearchAggregator = Depends(get_search_aggregator),
    users: UserLookup = Depends(get_user_lookup),
) -> CategorizedSearchResults:
    current_user = await users.get_user(request.uid)
    return await aggregator.submit(request.term, current_user)


__all__ = ["router"]
