"""
Fire-and-forget email delivery

Every send runs as its own asyncio task so the caller never waits on the
transport. The dispatcher keeps a reference to each pending task, logs and
counts failures in the done-callback, and can drain outstanding sends on
shutdown.
"""

import asyncio
import logging
from typing import Optional, Set

from .models import EmailContent
from .protocols import EmailClientProtocol

logger = logging.getLogger(__name__)


class EmailDispatcher:
    """Tracks background email sends"""

    def __init__(self, client: EmailClientProtocol):
        self.client = client
        self._pending: Set[asyncio.Task] = set()
        self.sent = 0
        self.failed = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def dispatch(self, to: Optional[str], content: EmailContent) -> Optional[asyncio.Task]:
        """Schedule a send; returns None when there is no address"""
        if not to:
            logger.info(f"Skipping email '{content.subject}': no recipient address")
            return None

        task = asyncio.create_task(
            self.client.send(to=to, subject=content.subject, text=content.text, html=content.html),
            name=f"email:{to}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            self.failed += 1
            logger.warning(f"Email task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self.failed += 1
            logger.error(f"Email task {task.get_name()} failed: {exc}")
        else:
            self.sent += 1

    async def drain(self, timeout: Optional[float] = None):
        """Wait for outstanding sends to finish"""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)

    async def close(self, timeout: Optional[float] = 10.0):
        await self.drain(timeout=timeout)
        for task in list(self._pending):
            task.cancel()
        await self.client.close()


__all__ = ["EmailDispatcher"]
