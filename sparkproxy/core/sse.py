"""SSE (Server-Sent Events) decoding of the upstream feed and client framing."""

import json
import logging
from typing import Any, AsyncIterator, Iterable, Iterator

from ..types.upstream import (
    ANSWER_FIELD,
    EVENT_MESSAGE_FIELD_DELTA,
    EVENT_MESSAGE_RESULT,
    EVENT_PROJECT_START,
    IGNORED,
    FieldDelta,
    Ignored,
    Result,
    SessionStart,
    UpstreamEvent,
)

logger = logging.getLogger("sparkproxy")

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def decode_event_line(line: str) -> UpstreamEvent:
    """
    Decode one upstream SSE line into a typed event.

    Never raises: blank lines, other SSE fields, malformed JSON and unknown
    event types all come back as ``Ignored``.

    Recognized payloads:
    - data: {"type":"project_start","id":"..."}
    - data: {"type":"message_field_delta","field_name":"session_state.answer","delta":"..."}
    - data: {"type":"message_result","content":"..."}
    """
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return IGNORED

    data = stripped[len(DATA_PREFIX):]
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed upstream event: %s", data[:100])
        return IGNORED

    if not isinstance(payload, dict):
        return IGNORED

    event_type = payload.get("type")
    if not isinstance(event_type, str):
        return IGNORED

    if event_type == EVENT_PROJECT_START:
        return SessionStart(session_id=_string_field(payload, "id"))

    if event_type == EVENT_MESSAGE_FIELD_DELTA:
        field_name = payload.get("field_name")
        delta = payload.get("delta")
        if field_name != ANSWER_FIELD or not isinstance(delta, str):
            return IGNORED
        return FieldDelta(field_name=field_name, delta=delta)

    if event_type == EVENT_MESSAGE_RESULT:
        return Result(final_text=_string_field(payload, "content"))

    return IGNORED


def _string_field(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


async def aiter_events(lines: AsyncIterator[str]) -> AsyncIterator[UpstreamEvent]:
    """Decode a line stream, yielding only meaningful events, in order."""
    async for line in lines:
        event = decode_event_line(line)
        if isinstance(event, Ignored):
            continue
        yield event


def split_event_lines(text: str) -> list[str]:
    r"""Split a buffered body into event lines on "\n" only.

    ``str.splitlines`` would also break on U+2028, U+0085 and other separators
    that are legal inside JSON strings. A trailing "\r" is left for
    ``decode_event_line`` to strip.
    """
    return text.split("\n")


def iter_events(lines: Iterable[str]) -> Iterator[UpstreamEvent]:
    """Synchronous twin of ``aiter_events`` for a fully buffered body."""
    for line in lines:
        event = decode_event_line(line)
        if isinstance(event, Ignored):
            continue
        yield event


def encode_sse_data(data: str) -> bytes:
    """Frame a payload the way the client-facing stream expects it."""
    return f"data: {data}\n\n".encode("utf-8")


def encode_sse_json(payload: Any) -> bytes:
    return encode_sse_data(json.dumps(payload, ensure_ascii=False, separators=(",", ":")))


def encode_sse_done() -> bytes:
    return encode_sse_data(DONE_SENTINEL)
