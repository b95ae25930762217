"""User search."""

from __future__ import annotations

import asyncio
from typing import Iterable

from chat_workspace.models.dto import UserResult
from chat_workspace.models.entities import PresenceStatus, UserIdentity
from chat_workspace.search.context import SearchContext
from chat_workspace.utils.text import matches_any


def is_searchable_user(user: UserIdentity, guest_user_name: str = "Guest") -> bool:
    return not user.is_guest and user.user_name != guest_user_name


def filter_users(users: Iterable[UserIdentity], term: str, guest_user_name: str = "Guest") -> list[UserIdentity]:
    return [
        user
        for user in users
        if is_searchable_user(user, guest_user_name) and matches_any(term, user.user_name, user.email)
    ]


def to_user_result(user: UserIdentity, status: PresenceStatus | None) -> UserResult:
    return UserResult(
        uid=user.uid,
        user_name=user.user_name,
        email=user.email,
        photo_url=user.photo_url,
        status=status,
    )


async def search_users(term: str, ctx: SearchContext) -> list[UserResult]:
    users = await ctx.documents.list_users()
    matched = filter_users(users, term, ctx.settings.guest_user_name)
    statuses = await asyncio.gather(*(ctx.presence_status(user.uid) for user in matched))
    return [to_user_result(user, status) for user, status in zip(matched, statuses)]


__all__ = ["search_users", "filter_users", "is_searchable_user", "to_user_result"]
