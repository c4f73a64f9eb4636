"""Stream adapter for converting the upstream ask SSE feed to OpenAI chunks.

Upstream Events (one JSON object per ``data:`` line, plenty of noise between):
    data: {"type":"project_start","id":"<session>"}
    data: {"type":"message_field_delta","field_name":"session_state.answer","delta":"Hel"}
    data: {"type":"message_field_delta","field_name":"session_state.answer","delta":"lo"}
    data: {"type":"message_result","content":"Hello"}

OpenAI Chat Completion Events:
    data: {"choices":[{"delta":{"role":"assistant","content":"Hel"},"index":0,"finish_reason":null}]}
    data: {"choices":[{"delta":{"role":"assistant","content":"lo"},"index":0,"finish_reason":null}]}
    data: {"choices":[{"delta":{},"index":0,"finish_reason":"stop"}]}
    data: [DONE]
"""

import enum
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from ..core.sse import aiter_events, encode_sse_done, encode_sse_json
from ..types.upstream import FieldDelta, Result, SessionStart
from .translator import ASSISTANT_ROLE, FINISH_REASON_STOP, build_chat_chunk

logger = logging.getLogger("sparkproxy")


class StreamState(enum.Enum):
    AWAIT_START = "await_start"
    STREAMING = "streaming"
    DONE = "done"


class AskToChatStreamAdapter:
    """Single-pass translator from decoded upstream events to SSE frames.

    Chunks go out in exactly the order their events were decoded. The
    adapter never reads ahead: it pulls the next line only after the previous
    frame has been handed to the consumer.
    """

    def __init__(
        self,
        response_id: str,
        model: str,
        on_session_end: Optional[Callable[[str], None]] = None,
    ) -> None:
        """Initialize the stream adapter.

        Args:
            response_id: Completion ID shared by every chunk
            model: Model name echoed in every chunk
            on_session_end: Called with the upstream session id once the
                terminal frames are out. Must not block.
        """
        self.response_id = response_id
        self.model = model
        self.on_session_end = on_session_end

        self.state = StreamState.AWAIT_START
        self.session_id = ""
        self.chunks_emitted = 0
        self.disconnected = False

    @property
    def completed(self) -> bool:
        """True once a result event was seen and the sentinel emitted."""
        return self.state is StreamState.DONE

    async def adapt_stream(
        self,
        lines: AsyncIterator[str],
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[bytes]:
        """Transform upstream SSE lines to OpenAI chat completion SSE frames.

        Args:
            lines: Raw upstream lines
            disconnect_checker: Polled before each upstream line; when it
                reports the client is gone the stream ends without further output.

        Yields:
            SSE frames as bytes
        """
        if disconnect_checker is not None:
            lines = self._until_disconnected(lines, disconnect_checker)

        async for event in aiter_events(lines):
            if self.state is StreamState.AWAIT_START:
                self.state = StreamState.STREAMING

            if isinstance(event, SessionStart):
                self.session_id = event.session_id
                logger.debug("Upstream session started: %s", event.session_id)
            elif isinstance(event, FieldDelta):
                yield self._emit_delta(event.delta)
            elif isinstance(event, Result):
                yield self._emit_finish()
                yield encode_sse_done()
                self.state = StreamState.DONE
                self._end_session()
                return

        if self.disconnected:
            logger.info("Client disconnected from %s; stopping stream", self.response_id)
            return

        logger.warning(
            "Upstream stream for %s ended without a result event after %d chunks",
            self.response_id,
            self.chunks_emitted,
        )

    async def _until_disconnected(
        self,
        lines: AsyncIterator[str],
        disconnect_checker: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[str]:
        # Checked per raw line so long runs of noise still notice a disconnect
        async for line in lines:
            if await disconnect_checker():
                self.disconnected = True
                return
            yield line

    def _emit_delta(self, text: str) -> bytes:
        self.chunks_emitted += 1
        chunk = build_chat_chunk(
            self.response_id,
            self.model,
            {"role": ASSISTANT_ROLE, "content": text},
        )
        return encode_sse_json(chunk)

    def _emit_finish(self) -> bytes:
        chunk = build_chat_chunk(
            self.response_id, self.model, {}, finish_reason=FINISH_REASON_STOP
        )
        return encode_sse_json(chunk)

    def _end_session(self) -> None:
        if self.on_session_end is None:
            return
        try:
            self.on_session_end(self.session_id)
        except RuntimeError as exc:
            # No running loop to schedule on; the answer is already delivered
            logger.warning("Could not schedule session cleanup: %s", exc)
