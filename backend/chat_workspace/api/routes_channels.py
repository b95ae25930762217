"""Channel listing routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from chat_workspace.api.dependencies import get_document_store, get_user_lookup
from chat_workspace.channels.categorizer import (
    build_channel_view,
    find_channel_by_id,
    get_available_users_for_new_dm,
)
from chat_workspace.db.sqlite import SQLiteDocumentStore
from chat_workspace.models.dto import ChannelPayload, ChannelViewResponse, UserPayload
from chat_workspace.models.entities import CategorizedChannelSet, UserIdentity
from chat_workspace.users.lookup import UserLookup

router = APIRouter()


async def _current_user(uid: str, users: UserLookup) -> UserIdentity:
    user = await users.get_user(uid)
    if user is None:
        raise HTTPException(status_code=404, detail=f"Unknown user {uid}")
    return user


async def _view(uid: str, documents: SQLiteDocumentStore, users: UserLookup) -> CategorizedChannelSet:
    current_user = await _current_user(uid, users)
    return build_channel_view(await documents.list_channels(), current_user)


@router.get(
    "/channels",
    response_model=ChannelViewResponse,
    response_model_by_alias=True,
    summary="Categorized channel list for a user",
)
async def list_channels(
    uid: str = Query(..., min_length=1),
    documents: SQLiteDocumentStore = Depends(get_document_store),
    users: UserLookup = Depends(get_user_lookup),
) -> ChannelViewResponse:
    return ChannelViewResponse.from_set(await _view(uid, documents, users))


@router.get(
    "/channels/{channel_id}",
    response_model=ChannelPayload,
    response_model_by_alias=True,
    summary="Look up one channel visible to a user",
)
async def get_channel(
    channel_id: str,
    uid: str = Query(..., min_length=1),
    documents: SQLiteDocumentStore = Depends(get_document_store),
    users: UserLookup = Depends(get_user_lookup),
) -> ChannelPayload:
    view = await _view(uid, documents, users)
    channel = find_channel_by_id(
        channel_id,
        view.regular_channels,
        view.direct_message_channels,
        view.self_channel,
    )
    if channel is None:
        raise HTTPException(status_code=404, detail="Channel not found")
    return ChannelPayload.from_record(channel)


@router.get(
    "/users/available-for-dm",
    response_model=list[UserPayload],
    response_model_by_alias=True,
    summary="Users without an existing direct message",
)
async def available_for_dm(
    uid: str = Query(..., min_length=1),
    documents: SQLiteDocumentStore = Depends(get_document_store),
    users: UserLookup = Depends(get_user_lookup),
) -> list[UserPayload]:
    view = await _view(uid, documents, users)
    available = get_available_users_for_new_dm(await documents.list_users(), view.direct_message_channels)
    return [UserPayload.from_identity(user) for user in available]


__all__ = ["router"]
