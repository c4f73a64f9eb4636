"""Detached delete-session calls.

Once a streamed answer is complete the upstream project is no longer needed.
Deleting it must never hold up or break the response already on the wire, so
each deletion runs as its own task, tracked only so shutdown can wait for it.
"""

import asyncio
import logging

import httpx

from .client import UpstreamClient
from .upstream import format_httpx_error

logger = logging.getLogger("sparkproxy")


class SessionCleaner:
    """Fire-and-forget worker for ``GET /api/project/delete``."""

    def __init__(self, client: UpstreamClient) -> None:
        self._client = client
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, session_id: str, cookie: str) -> None:
        """Queue deletion of ``session_id``; returns immediately."""
        if not session_id:
            logger.debug("No upstream session id recorded; skipping cleanup")
            return
        task = asyncio.get_running_loop().create_task(
            self._delete(session_id, cookie),
            name=f"delete-session-{session_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Session cleanup task %s crashed: %r", task.get_name(), exc)

    async def _delete(self, session_id: str, cookie: str) -> None:
        try:
            status = await self._client.delete_session(session_id, cookie)
        except httpx.HTTPError as exc:
            logger.warning(
                "Failed to delete upstream session %s: %s",
                session_id,
                format_httpx_error(exc),
            )
            return
        if status >= 400:
            logger.warning(
                "Deleting upstream session %s returned status %s", session_id, status
            )
        else:
            logger.info("Deleted upstream session %s", session_id)

    async def drain(self) -> None:
        """Wait for every pending deletion (called on shutdown)."""
        if not self._pending:
            return
        logger.info("Waiting for %d pending session cleanups", len(self._pending))
        await asyncio.gather(*list(self._pending), return_exceptions=True)
