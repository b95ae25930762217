"""Search orchestration across messages, direct messages, channels, threads and users."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Sequence

from chat_workspace.core.config import Settings
from chat_workspace.core.logging import get_logger, log_context
from chat_workspace.core.metrics import SEARCH_FAILURES, SEARCH_LATENCY
from chat_workspace.models.dto import CategorizedSearchResults
from chat_workspace.models.entities import UserIdentity
from chat_workspace.search.channels import search_channels
from chat_workspace.search.context import SearchContext
from chat_workspace.search.messages import search_direct_messages, search_messages
from chat_workspace.search.threads import search_threads
from chat_workspace.search.users import search_users
from chat_workspace.stores.base import DocumentStore, RealtimeStore
from chat_workspace.users.lookup import UserLookup

logger = get_logger(__name__)

CHANNEL_SIGIL = "#"
USER_SIGIL = "@"
CATEGORIES = ("messages", "direct_messages", "channels", "threads", "users")


class SearchAggregator:
    """Routes a term by sigil and fans it out over the sub-searches.

    A failing sub-search degrades to an empty list for its own category;
    the other categories are still returned.
    """

    def __init__(
        self,
        documents: DocumentStore,
        users: UserLookup,
        presence: RealtimeStore,
        settings: Settings | None = None,
    ) -> None:
        self.documents = documents
        self.users = users
        self.presence = presence
        self.settings = settings or Settings()
        self.latest_results = CategorizedSearchResults()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def search(self, term: str | None, current_user: UserIdentity | None = None) -> CategorizedSearchResults:
        term = (term or "").strip()
        if not term:
            return CategorizedSearchResults()
        ctx = self._context(current_user)
        try:
            if term.startswith(CHANNEL_SIGIL):
                channels = await self._guarded("channels", search_channels(term[1:].strip(), ctx))
                return CategorizedSearchResults(channels=channels)
            if term.startswith(USER_SIGIL):
                users = await self._guarded("users", search_users(term[1:].strip(), ctx))
                return CategorizedSearchResults(users=users)
            return await self._search_all(term, ctx)
        except Exception:
            logger.exception("Search orchestration failed", extra=log_context(term=term))
            return CategorizedSearchResults()

    async def submit(self, term: str | None, current_user: UserIdentity | None = None) -> CategorizedSearchResults:
        """Run a search and publish it unless a newer submission started meanwhile."""
        self._generation += 1
        generation = self._generation
        results = await self.search(term, current_user)
        if generation == self._generation:
            self.latest_results = results
        else:
            logger.debug("Discarding superseded search generation %s", generation)
        return results

    async def _search_all(self, term: str, ctx: SearchContext) -> CategorizedSearchResults:
        coroutines = (
            search_messages(term, ctx),
            search_direct_messages(term, ctx),
            search_channels(term, ctx),
            search_threads(term, ctx),
            search_users(term, ctx),
        )
        results = await asyncio.gather(
            *(self._guarded(category, coro) for category, coro in zip(CATEGORIES, coroutines))
        )
        return CategorizedSearchResults(**dict(zip(CATEGORIES, results)))

    async def _guarded(self, category: str, coro: Awaitable[Sequence[Any]]) -> list[Any]:
        start = time.perf_counter()
        try:
            return list(await coro)
        except Exception:
            SEARCH_FAILURES.labels(category=category).inc()
            logger.warning("Search category failed", exc_info=True, extra=log_context(category=category))
            return []
        finally:
            SEARCH_LATENCY.labels(category=category).observe(time.perf_counter() - start)

    def _context(self, current_user: UserIdentity | None) -> SearchContext:
        return SearchContext(
            documents=self.documents,
            users=self.users,
            presence=self.presence,
            settings=self.settings,
            current_user=current_user,
        )


__all__ = ["SearchAggregator", "CATEGORIES", "CHANNEL_SIGIL", "USER_SIGIL"]
