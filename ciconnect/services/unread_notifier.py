"""Live unread-message badge driven by the messages change feed."""
from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import create_session
from .change_feed import ChangeEvent, ChangeFeed, ChangePredicate, Subscription, change_feed
from .message_service import MESSAGES_TABLE, count_unread_messages

logger = logging.getLogger(__name__)

CountFetcher = Callable[[], Awaitable[int]]
CountListener = Callable[[int], Awaitable[None]]


class NotifierState(StrEnum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


class UnreadCountNotifier:
    """Keeps an unread count current by refetching it on every change to ``messages``.

    Each refetch takes a generation number and only the response belonging to the
    most recently issued fetch is applied, so a slow response can never overwrite a
    newer one. Failed fetches are logged and the previous count stays in place.
    """

    def __init__(
        self,
        fetch_count: CountFetcher,
        feed: ChangeFeed,
        *,
        on_update: CountListener | None = None,
        predicate: ChangePredicate | None = None,
    ) -> None:
        self._fetch_count = fetch_count
        self._feed = feed
        self._on_update = on_update
        self._predicate = predicate
        self._state = NotifierState.UNINITIALIZED
        self._count = 0
        self._loaded = False
        self._issued = 0
        self._subscription: Subscription | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def count(self) -> int:
        return self._count

    @property
    def generation(self) -> int:
        return self._issued

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def start(self) -> None:
        """Load the initial count, then listen for message changes."""

        if self._state is not NotifierState.UNINITIALIZED:
            raise RuntimeError(f"Notifier cannot start from state {self._state}")
        await self.refresh()
        if self._state is NotifierState.CLOSED:
            return
        self._subscription = self._feed.subscribe(MESSAGES_TABLE, self._handle_change, predicate=self._predicate)

    async def refresh(self) -> None:
        """Refetch the count and apply it unless a newer fetch was issued meanwhile."""

        if self._state is NotifierState.CLOSED:
            return
        self._issued += 1
        generation = self._issued
        self._state = NotifierState.LOADING

        try:
            count = await self._fetch_count()
        except Exception:
            logger.exception("Error fetching unread messages (generation %d)", generation)
            if self._state is not NotifierState.CLOSED and generation == self._issued:
                self._state = NotifierState.READY if self._loaded else NotifierState.UNINITIALIZED
            return

        if self._state is NotifierState.CLOSED:
            return
        if generation != self._issued:
            logger.debug("Discarding stale unread count from generation %d (latest %d)", generation, self._issued)
            return

        self._count = int(count)
        self._loaded = True
        self._state = NotifierState.READY
        if self._on_update is not None:
            await self._on_update(self._count)

    async def _handle_change(self, event: ChangeEvent) -> None:
        task = asyncio.create_task(self._refresh_in_background())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _refresh_in_background(self) -> None:
        try:
            await self.refresh()
        except Exception:
            logger.exception("Unread count listener failed")

    async def drain(self) -> None:
        """Wait for every refetch triggered so far to settle."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def close(self) -> None:
        """Release the subscription; refetches still in flight are never applied."""

        self._state = NotifierState.CLOSED
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


def involves_actor(actor_id: UUID) -> ChangePredicate:
    """Match only message changes where ``actor_id`` is the sender or the receiver."""

    target = str(actor_id)

    def _predicate(event: ChangeEvent) -> bool:
        record = event.record
        return record.get("sender_id") == target or record.get("receiver_id") == target

    return _predicate


def _count_with_new_session(session_factory: Callable[[], Session], actor_id: UUID) -> int:
    with session_factory() as db:
        return count_unread_messages(db, actor_id)


def build_unread_notifier(
    actor_id: UUID,
    *,
    on_update: CountListener | None = None,
    feed: ChangeFeed | None = None,
    session_factory: Callable[[], Session] = create_session,
) -> UnreadCountNotifier:
    """Wire a notifier for ``actor_id`` to the database and the shared change feed."""

    async def _fetch() -> int:
        return await asyncio.to_thread(_count_with_new_session, session_factory, actor_id)

    predicate = involves_actor(actor_id) if get_settings().realtime_filter_to_actor else None
    return UnreadCountNotifier(_fetch, feed or change_feed, on_update=on_update, predicate=predicate)


__all__ = [
    "NotifierState",
    "UnreadCountNotifier",
    "build_unread_notifier",
    "involves_actor",
]
