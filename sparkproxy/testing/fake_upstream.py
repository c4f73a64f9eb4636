"""Fake Genspark ASGI app for simulating deterministic upstream behaviour."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ..core.sse import encode_sse_data
from ..types.upstream import (
    ANSWER_FIELD,
    EVENT_MESSAGE_FIELD_DELTA,
    EVENT_MESSAGE_RESULT,
    EVENT_PROJECT_START,
)

BLOB_PREFIX = "/blob"
FILES_PREFIX = "/files"


@dataclass
class AskResponse:
    """A queued reply for ``POST /api/copilot/ask``.

    Fields:
        status_code: HTTP status code (default 200)
        events: Upstream events; dicts are JSON-encoded, strings are sent
            verbatim as the ``data:`` payload, bytes are sent raw
        body: Raw body used instead of events (error replies)
        chunk_delay_s: Delay between events
    """

    status_code: int = 200
    events: list[Any] = field(default_factory=list)
    body: bytes | str | None = None
    chunk_delay_s: float | None = None


def build_ask_events(
    deltas: Iterable[str],
    *,
    session_id: str = "proj-1",
    final_text: Optional[str] = None,
    noise: bool = True,
) -> list[dict[str, Any]]:
    """Build a realistic event sequence: start, deltas, result.

    ``final_text`` defaults to the joined deltas. Pass ``noise=False`` to
    drop the unrelated events the real site interleaves.
    """
    parts = list(deltas)
    events: list[dict[str, Any]] = [{"type": EVENT_PROJECT_START, "id": session_id}]
    if noise:
        events.append({"type": "project_field", "field_name": "name", "field_value": "chat"})
    for part in parts:
        events.append(
            {
                "type": EVENT_MESSAGE_FIELD_DELTA,
                "field_name": ANSWER_FIELD,
                "delta": part,
            }
        )
        if noise:
            events.append(
                {
                    "type": EVENT_MESSAGE_FIELD_DELTA,
                    "field_name": "session_state.steps",
                    "delta": "thinking",
                }
            )
    events.append(
        {
            "type": EVENT_MESSAGE_RESULT,
            "content": "".join(parts) if final_text is None else final_text,
        }
    )
    return events


def _encode_event(event: Any) -> bytes:
    if isinstance(event, bytes):
        return event
    if isinstance(event, str):
        return encode_sse_data(event)
    return encode_sse_data(json.dumps(event, ensure_ascii=False))


class FakeGenspark:
    """ASGI app standing in for the upstream site, its blob store and image hosts.

    Supports:
    - Queued ask replies, streamed event by event
    - Project deletion, upload slots and blob PUTs
    - Static files for attachment downloads
    - Request tracking/inspection through ``received``
    """

    def __init__(
        self,
        responses: Optional[Iterable[AskResponse]] = None,
        *,
        blob_base_url: str = "https://blob.fake.test",
    ) -> None:
        self.app = FastAPI(title="FakeGenspark")
        self._queue: Deque[AskResponse] = deque(responses or [])
        self.received: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.uploads: dict[str, bytes] = {}
        self.files: dict[str, tuple[bytes, str]] = {}
        self.blob_base_url = blob_base_url.rstrip("/")
        self.delete_status = 200
        self.upload_slot_status = 200
        self.upload_status = 201
        self._slot_counter = 0

        self.app.post("/api/copilot/ask")(self._handle_ask)
        self.app.get("/api/project/delete")(self._handle_delete)
        self.app.get("/api/get_upload_personal_image_url")(self._handle_upload_slot)
        self.app.put(BLOB_PREFIX + "/{name}")(self._handle_blob_put)
        self.app.get(FILES_PREFIX + "/{name}")(self._handle_file)

    def enqueue(self, response: AskResponse) -> None:
        """Add an ask reply to the queue."""
        self._queue.append(response)

    def enqueue_answer(self, *deltas: str, session_id: str = "proj-1", **kwargs: Any) -> None:
        """Queue a normal answer made of ``deltas``."""
        self.enqueue(
            AskResponse(events=build_ask_events(deltas, session_id=session_id, **kwargs))
        )

    def enqueue_error(self, status_code: int, message: str = "upstream failure") -> None:
        self.enqueue(AskResponse(status_code=status_code, body=message))

    def add_file(self, name: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Serve ``data`` at ``/files/<name>`` and return its path."""
        self.files[name] = (data, content_type)
        return f"{FILES_PREFIX}/{name}"

    def requests_to(self, path: str) -> list[dict[str, Any]]:
        return [entry for entry in self.received if entry["path"] == path]

    def clear(self) -> None:
        """Clear queued replies and everything recorded."""
        self._queue.clear()
        self.received.clear()
        self.deleted.clear()
        self.uploads.clear()

    # -------------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------------

    async def _record(self, request: Request) -> bytes:
        body = await request.body()
        payload: Any = None
        if body:
            try:
                payload = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                payload = None
        self.received.append(
            {
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query,
                "headers": dict(request.headers),
                "json": payload,
                "body": body,
            }
        )
        return body

    async def _handle_ask(self, request: Request) -> Response:
        await self._record(request)
        if not self._queue:
            return JSONResponse(
                {"error": {"message": "No upstream responses queued"}},
                status_code=500,
            )

        reply = self._queue.popleft()
        if reply.body is not None:
            return Response(
                content=reply.body,
                status_code=reply.status_code,
                media_type="text/plain",
            )
        return StreamingResponse(
            self._stream_events(reply),
            status_code=reply.status_code,
            media_type="text/event-stream",
        )

    async def _stream_events(self, reply: AskResponse):
        for event in reply.events:
            yield _encode_event(event)
            if reply.chunk_delay_s:
                await asyncio.sleep(reply.chunk_delay_s)

    async def _handle_delete(self, request: Request) -> Response:
        await self._record(request)
        project_id = request.query_params.get("project_id", "")
        self.deleted.append(project_id)
        return JSONResponse({"status": 0, "message": "ok"}, status_code=self.delete_status)

    async def _handle_upload_slot(self, request: Request) -> Response:
        await self._record(request)
        if self.upload_slot_status >= 400:
            return JSONResponse({"status": -1}, status_code=self.upload_slot_status)
        self._slot_counter += 1
        name = f"upload-{self._slot_counter}"
        return JSONResponse(
            {
                "status": 0,
                "data": {
                    "upload_image_url": f"{self.blob_base_url}{BLOB_PREFIX}/{name}?sig=fake",
                    "private_storage_url": f"{self.blob_base_url}{FILES_PREFIX}/{name}",
                },
            }
        )

    async def _handle_blob_put(self, name: str, request: Request) -> Response:
        body = await self._record(request)
        if self.upload_status >= 400:
            return Response(status_code=self.upload_status)
        self.uploads[name] = body
        return Response(status_code=self.upload_status)

    async def _handle_file(self, name: str, request: Request) -> Response:
        await self._record(request)
        if name not in self.files:
            return Response(status_code=404)
        data, content_type = self.files[name]
        return Response(content=data, media_type=content_type)
