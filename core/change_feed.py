"""
Realtime Change Feed

Pushes persisted row changes to interested consumers (websocket streams).

- ``ChangeFeedHub`` keeps the in-process subscription registry and fans a
  change out to every matching subscription.
- ``PostgresChangeFeed`` feeds the hub from PostgreSQL ``LISTEN`` on the
  channel populated by the row-change trigger in ``scripts/schema.sql``.
- ``Subscription`` is an async iterator with an explicit lifecycle: close it
  (or use it as an async context manager) when the consumer goes away.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import asyncpg
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from core.config import InfraConfig
from core.datastore import matches_filters

logger = logging.getLogger(__name__)


class ChangeEventType(str, Enum):
    """Row change kinds"""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    ALL = "*"


class ChangeEvent(BaseModel):
    """A single persisted row change"""
    table: str
    event: ChangeEventType
    row: Dict[str, Any] = Field(default_factory=dict)
    old_row: Optional[Dict[str, Any]] = None
    # Oversized rows arrive as identifying keys only; consumers re-read the row
    truncated: bool = False


_CLOSED = object()


class Subscription:
    """Filtered view of the change feed for one consumer"""

    def __init__(
        self,
        hub: "ChangeFeedHub",
        table: str,
        event: ChangeEventType = ChangeEventType.ALL,
        filters: Optional[Dict[str, Any]] = None,
        max_queue: int = 100,
    ):
        self._hub = hub
        self.table = table
        self.event = ChangeEventType(event)
        self.filters = dict(filters or {})
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if self.event != ChangeEventType.ALL and change.event != self.event:
            return False
        row = change.old_row if change.event == ChangeEventType.DELETE else change.row
        return matches_filters(row, self.filters)

    def _offer(self, change: ChangeEvent) -> bool:
        if self.closed:
            return False
        if self._queue.full():
            # Slow consumer: drop the oldest change
            self._queue.get_nowait()
            logger.warning(f"Change feed queue full for {self.table} subscription, dropping oldest change")
        self._queue.put_nowait(change)
        return True

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Wait for the next change; None once the subscription is closed"""
        if self.closed and self._queue.empty():
            return None
        item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is _CLOSED:
            return None
        return item

    async def close(self):
        """Unregister from the hub and wake any waiting consumer"""
        if self.closed:
            return
        self.closed = True
        self._hub._remove(self)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        change = await self.get()
        if change is None:
            raise StopAsyncIteration
        return change

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@runtime_checkable
class ChangeFeedProtocol(Protocol):
    """Interface for realtime change subscriptions"""

    def subscribe(
        self,
        table: str,
        event: ChangeEventType = ChangeEventType.ALL,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        """Open a subscription; the caller owns closing it"""
        ...


class ChangeFeedHub:
    """In-process subscription registry and fan-out"""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        table: str,
        event: ChangeEventType = ChangeEventType.ALL,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        subscription = Subscription(self, table, event, filters)
        self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {table} ({subscription.event.value}) filters={subscription.filters}")
        return subscription

    def publish(self, change: ChangeEvent) -> int:
        """Deliver a change to every matching subscription; returns delivery count"""
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(change) and subscription._offer(change):
                delivered += 1
        return delivered

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _remove(self, subscription: Subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def close_all(self):
        for subscription in list(self._subscriptions):
            await subscription.close()


class PostgresChangeFeed(ChangeFeedHub):
    """Change feed driven by PostgreSQL LISTEN/NOTIFY"""

    def __init__(self, config: InfraConfig):
        super().__init__()
        self.config = config
        self.channel = config.change_feed_channel
        self._conn: Optional[asyncpg.Connection] = None

    async def start(self):
        """Open a dedicated listening connection"""
        if self._conn is not None:
            return
        self._conn = await asyncpg.connect(dsn=self.config.postgres_dsn)
        await self._conn.add_listener(self.channel, self._on_notify)
        logger.info(f"Listening for row changes on channel '{self.channel}'")

    async def stop(self):
        """Stop listening and close every open subscription"""
        if self._conn is not None:
            try:
                await self._conn.remove_listener(self.channel, self._on_notify)
            finally:
                await self._conn.close()
                self._conn = None
        await self.close_all()

    def _on_notify(self, connection, pid, channel, payload):
        try:
            data = json.loads(payload)
            change = ChangeEvent(
                table=data["table"],
                event=ChangeEventType(data["event"]),
                row=data.get("row") or {},
                old_row=data.get("old_row"),
                truncated=bool(data.get("truncated")),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed change notification on {channel}: {e}")
            return
        self.publish(change)


async def stream_subscription(websocket: WebSocket, subscription: Subscription):
    """
    Relay a subscription to an accepted websocket until either side goes away.

    The subscription is always closed on exit.
    """

    async def _pump():
        async for change in subscription:
            await websocket.send_json(change.model_dump(mode="json"))

    async def _watch():
        # Raises WebSocketDisconnect when the client leaves
        while True:
            await websocket.receive_text()

    pump = asyncio.create_task(_pump())
    watch = asyncio.create_task(_watch())
    try:
        done, pending = await asyncio.wait({pump, watch}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"Change stream for {subscription.table} failed: {exc}")
    finally:
        await subscription.close()


__all__ = [
    "ChangeEventType",
    "ChangeEvent",
    "Subscription",
    "ChangeFeedProtocol",
    "ChangeFeedHub",
    "PostgresChangeFeed",
    "stream_subscription",
]
