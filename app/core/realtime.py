"""Realtime change feed — "table X changed" notifications for the surfaces.

Subscribers treat an event purely as an invalidation signal: they refetch the
relevant list or row and never read state out of the payload. Two feeds share
one interface:

- ``SupabaseChangeFeed`` listens to Postgres changes through Supabase realtime
- ``InMemoryChangeFeed`` fans events out inside the process (SSE bridge
  without realtime, and tests)
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Awaitable, Callable
from uuid import uuid4

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change notification."""

    table: str
    event_type: str  # INSERT, UPDATE or DELETE
    record: dict[str, Any] = field(default_factory=dict)
    old_record: dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], Awaitable[None] | None]


@dataclass(frozen=True)
class ChangeFilter:
    table: str
    column: str | None = None
    value: Any = None

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.column is None:
            return True
        row = event.record or event.old_record
        return str(row.get(self.column)) == str(self.value)

    def as_postgres_filter(self) -> str | None:
        if self.column is None:
            return None
        return f"{self.column}=eq.{self.value}"


class Subscription(ABC):
    @abstractmethod
    async def unsubscribe(self) -> None:
        """Stop delivering events to the callback."""


class ChangeFeed(ABC):
    """
    Source of change notifications scoped by table and optional row filter.

    Async subscriber results are kept in ``_pending`` until they finish so
    they are not collected early and their failures reach the log.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Future] = set()

    @abstractmethod
    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        """Deliver every insert/update/delete on ``table`` (where ``column = value``)."""

    def _deliver(self, callback: ChangeCallback, event: ChangeEvent) -> None:
        try:
            future = _invoke(callback, event)
        except Exception:
            logger.exception(f"Change subscriber failed on {event.table}")
            return
        if future is not None:
            self._pending.add(future)
            future.add_done_callback(self._finish)

    def _finish(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Change subscriber task failed: {future.exception()}")

    async def drain(self) -> None:
        """Wait until every scheduled subscriber task has finished."""
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _invoke(callback: ChangeCallback, event: ChangeEvent) -> asyncio.Future | None:
    """Call a subscriber; coroutine results are scheduled on the running loop."""
    result = callback(event)
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)
    return None


# =============================================================================
# In-process feed
# =============================================================================


class _LocalSubscription(Subscription):
    def __init__(self, feed: "InMemoryChangeFeed", key: int):
        self._feed = feed
        self._key = key

    async def unsubscribe(self) -> None:
        self._feed._subscribers.pop(self._key, None)


class InMemoryChangeFeed(ChangeFeed):
    """
    Fan-out of published events to in-process subscribers.

    Events published from a worker thread (storage calls run through
    ``asyncio.to_thread``) are handed to the subscribers' loop.
    """

    def __init__(self) -> None:
        super().__init__()
        self._subscribers: dict[int, tuple[ChangeFilter, ChangeCallback]] = {}
        self._ids = count()
        self._loop: asyncio.AbstractEventLoop | None = None

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        self._loop = asyncio.get_running_loop()
        key = next(self._ids)
        self._subscribers[key] = (ChangeFilter(table, column, value), callback)
        return _LocalSubscription(self, key)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        """Notify every matching subscriber. Async callbacks run as tasks."""
        loop = self._loop
        if loop is not None and not loop.is_closed() and not _running_in(loop):
            loop.call_soon_threadsafe(self._dispatch, event)
            return
        self._dispatch(event)

    def _dispatch(self, event: ChangeEvent) -> None:
        for change_filter, callback in list(self._subscribers.values()):
            if change_filter.matches(event):
                self._deliver(callback, event)


def _running_in(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


# =============================================================================
# Supabase realtime feed
# =============================================================================


def event_from_payload(table: str, payload: dict[str, Any]) -> ChangeEvent:
    """Normalize a Supabase postgres_changes payload."""
    data = payload.get("data", payload) or {}
    event_type = data.get("type") or data.get("eventType") or "UPDATE"
    return ChangeEvent(
        table=data.get("table") or table,
        event_type=str(event_type).upper(),
        record=data.get("record") or data.get("new") or {},
        old_record=data.get("old_record") or data.get("old") or {},
    )


class _ChannelSubscription(Subscription):
    def __init__(self, channel: Any):
        self._channel = channel

    async def unsubscribe(self) -> None:
        await self._channel.unsubscribe()


class SupabaseChangeFeed(ChangeFeed):
    """Postgres change notifications delivered by Supabase realtime."""

    def __init__(self, client_factory: Callable[[], Awaitable[Any]] | None = None):
        if client_factory is None:
            from app.db.supabase_client import get_async_supabase

            client_factory = get_async_supabase
        super().__init__()
        self._client_factory = client_factory

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        client = await self._client_factory()
        change_filter = ChangeFilter(table, column, value)
        channel = client.channel(f"{table}-changes-{uuid4().hex[:8]}")

        def handle(payload: dict[str, Any]) -> None:
            event = event_from_payload(table, payload)
            logger.debug(f"Realtime {event.event_type} on {event.table}")
            self._deliver(callback, event)

        channel.on_postgres_changes(
            event="*",
            schema="public",
            table=table,
            filter=change_filter.as_postgres_filter(),
            callback=handle,
        )
        await channel.subscribe()
        logger.info(
            f"Subscribed to {table} changes",
            extra={"extra_data": {"filter": change_filter.as_postgres_filter()}},
        )
        return _ChannelSubscription(channel)


# =============================================================================
# Process-wide feed
# =============================================================================

_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    """Get the process-wide feed selected by REALTIME_BACKEND."""
    global _feed
    if _feed is None:
        backend = get_settings().REALTIME_BACKEND
        if backend == "supabase":
            _feed = SupabaseChangeFeed()
        elif backend == "memory":
            _feed = InMemoryChangeFeed()
        else:
            raise ValueError(f"Unknown REALTIME_BACKEND: {backend}")
    return _feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    """Replace the process-wide feed (None resets to the configured backend)."""
    global _feed
    _feed = feed


def notify_change(table: str, event_type: str, record: dict[str, Any]) -> None:
    """
    Publish a write made through the HTTP API.

    Only the in-process feed needs this; with Supabase realtime the database
    emits the notification itself.
    """
    feed = get_change_feed()
    if isinstance(feed, InMemoryChangeFeed):
        feed.publish(ChangeEvent(table=table, event_type=event_type, record=record))
