"""Per-request orchestration: resolve, translate, ask, adapt."""

import asyncio
import logging
import time
from functools import partial
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse, StreamingResponse

from ..ask import (
    AskToChatStreamAdapter,
    build_ask_request,
    build_chat_completion,
    collect_final_answer,
    generate_response_id,
    serialize_ask_request,
)
from ..attachments import AttachmentResolver
from ..types.chat import ChatMessage
from .cleanup import SessionCleaner
from .client import UpstreamClient, UpstreamStream
from .credentials import CookiePool
from .sse import split_event_lines
from .upstream import UpstreamSettings

logger = logging.getLogger("sparkproxy")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _parse_model_list(entries: Any) -> List[str]:
    if not isinstance(entries, (list, tuple)):
        return []
    models: List[str] = []
    for entry in entries:
        # Accept bare ids or {"model_name": ...} mappings
        if isinstance(entry, Mapping):
            entry = entry.get("model_name") or entry.get("id")
        if entry is None:
            continue
        name = str(entry).strip()
        if name and name not in models:
            models.append(name)
    return models


class ChatBridge:
    """Turns one OpenAI chat request into one upstream ask call."""

    def __init__(
        self,
        config: Mapping[str, Any],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = UpstreamSettings.from_config(config)
        self.cookies = CookiePool.from_config(config)
        self.models = _parse_model_list(config.get("model_list"))
        self.client = UpstreamClient(self.settings, transport=transport)
        self.resolver = AttachmentResolver(self.client)
        self.cleaner = SessionCleaner(self.client)
        self.created_at = int(time.time())

    async def list_model_names(self) -> List[str]:
        return list(self.models)

    async def forward_chat(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        is_stream: bool,
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> Response:
        """Forward a chat request upstream and translate the answer.

        Raises:
            ConfigurationError: no session cookie available.
            PayloadSerializationError: the ask payload cannot be encoded.
            UpstreamError: the ask call failed or returned an error status.
            NoResultError: a buffered answer carried no usable result.
        """
        logger.info(f"Forwarding chat request for model: {model}, stream: {is_stream}")
        cookie = self.cookies.pick()

        resolved = await self.resolver.resolve(messages, cookie)
        ask_request = build_ask_request(model, resolved)
        body = serialize_ask_request(ask_request)
        logger.debug(f"Ask payload size: {len(body)} bytes")

        response_id = generate_response_id()
        if is_stream:
            upstream = await self.client.open_ask_stream(body, cookie)
            return self._stream_response(
                upstream, response_id, model, cookie, disconnect_checker
            )

        text = await self.client.ask(body, cookie)
        answer = collect_final_answer(split_event_lines(text))
        logger.info(f"Upstream answered {len(answer.content)} characters for {response_id}")
        if self.settings.auto_delete_chat:
            self.cleaner.schedule(answer.session_id, cookie)
        return JSONResponse(build_chat_completion(response_id, model, answer.content))

    def _stream_response(
        self,
        upstream: UpstreamStream,
        response_id: str,
        model: str,
        cookie: str,
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]],
    ) -> StreamingResponse:
        on_session_end = None
        if self.settings.auto_delete_chat:
            on_session_end = partial(self.cleaner.schedule, cookie=cookie)
        adapter = AskToChatStreamAdapter(response_id, model, on_session_end=on_session_end)

        async def iterator():
            try:
                async for frame in adapter.adapt_stream(
                    upstream.aiter_lines(), disconnect_checker
                ):
                    yield frame
            except asyncio.CancelledError:
                logger.info(f"Stream {response_id} cancelled by client")
                raise
            except httpx.HTTPError as exc:
                # Headers are already sent; end the stream
                logger.error(f"Upstream stream {response_id} broke: {exc}")
            finally:
                await upstream.aclose()
                if adapter.completed:
                    logger.info(f"Stream {response_id} completed with {adapter.chunks_emitted} chunks")
                else:
                    logger.info(f"Stream {response_id} closed before a result arrived")

        return StreamingResponse(
            iterator(),
            headers=STREAM_HEADERS,
            media_type="text/event-stream",
        )
