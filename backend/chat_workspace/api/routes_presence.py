"""Presence routes: read the shared cache and drive per-user trackers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from chat_workspace.api.dependencies import get_presence_cache, get_session_registry
from chat_workspace.core.errors import UnknownSessionError
from chat_workspace.models.dto import (
    OnlineUsersResponse,
    PresenceEventRequest,
    PresencePayload,
    SessionResponse,
)
from chat_workspace.presence.cache import PresenceCache
from chat_workspace.presence.sessions import PresenceSession, PresenceSessionRegistry

router = APIRouter()


def _session_response(uid: str, session: PresenceSession) -> SessionResponse:
    tracker = session.tracker
    return SessionResponse(
        uid=uid,
        status=tracker.status,
        visible=tracker.visible,
        away_pending=tracker.away_pending,
    )


def _lookup(registry: PresenceSessionRegistry, uid: str) -> PresenceSession:
    try:
        return registry.get(uid)
    except UnknownSessionError:
        raise HTTPException(status_code=404, detail=f"No presence session for {uid}") from None


@router.get("/presence", response_model=list[PresencePayload], response_model_by_alias=True)
async def list_presence(cache: PresenceCache = Depends(get_presence_cache)) -> list[PresencePayload]:
    return [PresencePayload.from_record(uid, record) for uid, record in sorted(cache.snapshot().items())]


@router.get("/presence/online", response_model=OnlineUsersResponse, summary="Users currently online")
async def online_users(cache: PresenceCache = Depends(get_presence_cache)) -> OnlineUsersResponse:
    uids = sorted(cache.online_user_ids())
    return OnlineUsersResponse(uids=uids, count=len(uids))


@router.get("/presence/{uid}", response_model=PresencePayload, response_model_by_alias=True)
async def get_presence(uid: str, cache: PresenceCache = Depends(get_presence_cache)) -> PresencePayload:
    record = cache.get(uid)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No presence for {uid}")
    return PresencePayload.from_record(uid, record)


@router.post(
    "/presence/sessions/{uid}",
    response_model=SessionResponse,
    response_model_by_alias=True,
    summary="Start presence tracking after sign-in",
)
async def open_session(
    uid: str,
    registry: PresenceSessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    session = await registry.open(uid)
    return _session_response(uid, session)


@router.post(
    "/presence/sessions/{uid}/events",
    response_model=SessionResponse,
    response_model_by_alias=True,
    summary="Forward a browser or network event to a tracker",
)
async def post_event(
    uid: str,
    request: PresenceEventRequest,
    registry: PresenceSessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    session = _lookup(registry, uid)
    try:
        session.tracker.dispatch(request.event, visible=request.visible)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Unknown presence event {request.event!r}") from exc
    await session.tracker.drain()
    return _session_response(uid, session)


@router.delete("/presence/sessions/{uid}", status_code=204, summary="Sign out")
async def close_session(uid: str, registry: PresenceSessionRegistry = Depends(get_session_registry)) -> None:
    try:
        await registry.close(uid)
    except UnknownSessionError:
        raise HTTPException(status_code=404, detail=f"No presence session for {uid}") from None


@router.post("/presence/sessions/{uid}/disconnect", status_code=204, summary="Drop the connection ungracefully")
async def drop_session(uid: str, registry: PresenceSessionRegistry = Depends(get_session_registry)) -> None:
    try:
        await registry.disconnect(uid)
    except UnknownSessionError:
        raise HTTPException(status_code=404, detail=f"No presence session for {uid}") from None


__all__ = ["router"]
