"""In-process change feed that announces row changes to realtime subscribers."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A single insert/update/delete on a collection."""

    table: str
    type: str
    record: dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]
ChangePredicate = Callable[[ChangeEvent], bool]


class Subscription:
    """Handle returned by :meth:`ChangeFeed.subscribe`; release it with :meth:`unsubscribe`."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        callback: ChangeCallback,
        predicate: ChangePredicate | None = None,
    ) -> None:
        self._feed = feed
        self.table = table
        self.callback = callback
        self.predicate = predicate
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return self.predicate is None or self.predicate(event)

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    """Tracks subscriptions per collection and fans change events out to them."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        predicate: ChangePredicate | None = None,
    ) -> Subscription:
        subscription = Subscription(self, table, callback, predicate)
        self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, ()))

    def _remove(self, subscription: Subscription) -> None:
        group = self._subscriptions.get(subscription.table)
        if not group:
            return
        try:
            group.remove(subscription)
        except ValueError:
            return
        if not group:
            self._subscriptions.pop(subscription.table, None)

    async def publish(self, event: ChangeEvent) -> None:
        targets = list(self._subscriptions.get(event.table, ()))
        for subscription in targets:
            if not subscription.active or not subscription.matches(event):
                continue
            try:
                await subscription.callback(event)
            except Exception:
                logger.exception("Change feed callback failed for %s %s", event.type, event.table)


change_feed = ChangeFeed()

_pending: set[asyncio.Task[None]] = set()


def schedule_change(table: str, type_: str, record: dict[str, Any] | None = None, *, feed: ChangeFeed | None = None) -> None:
    """Publish a change from synchronous service code onto the running event loop.

    Outside an event loop (scripts, plain unit tests) the event is dropped.
    """

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop; dropping %s event for %s", type_, table)
        return
    target = feed or change_feed
    task = loop.create_task(target.publish(ChangeEvent(table=table, type=type_, record=dict(record or {}))))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


__all__ = [
    "INSERT",
    "UPDATE",
    "DELETE",
    "ChangeEvent",
    "ChangeFeed",
    "Subscription",
    "change_feed",
    "schedule_change",
]
