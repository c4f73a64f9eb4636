"""Translation between OpenAI chat completions and the upstream ask API.

This module handles:
1. Building the ask payload from resolved chat messages
2. Collecting the final answer out of a buffered ask response
3. Building OpenAI completion objects and streaming chunks
"""

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..core.exceptions import NoResultError, PayloadSerializationError
from ..core.sse import iter_events
from ..types.chat import ChatCompletionChunk, ChatCompletionResponse, Delta
from ..types.upstream import AskRequest, ResolvedConversation, Result, SessionStart

logger = logging.getLogger("sparkproxy")

FINISH_REASON_STOP = "stop"
ASSISTANT_ROLE = "assistant"


def generate_response_id(now: Optional[datetime] = None) -> str:
    """Generate a completion ID (``chatcmpl-`` + local timestamp)."""
    moment = now or datetime.now()
    return f"chatcmpl-{moment.strftime('%Y%m%d%H%M%S')}"


# =============================================================================
# Chat Completions → Ask
# =============================================================================


def build_ask_request(model: str, resolved: ResolvedConversation) -> AskRequest:
    """Build the upstream request for ``model``.

    Only accepts messages that went through the attachment resolver.
    """
    if not isinstance(resolved, ResolvedConversation):
        raise TypeError(
            "build_ask_request expects a ResolvedConversation; "
            "run the attachment resolver first"
        )
    return AskRequest(
        messages=resolved.messages,
        models=(model,),
        run_with_another_model=False,
    )


def serialize_ask_request(request: AskRequest) -> bytes:
    """Encode the ask payload, failing before any network call is made."""
    try:
        return json.dumps(request.to_payload(), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        logger.error("Failed to marshal upstream request body: %s", exc)
        raise PayloadSerializationError("Failed to marshal request body") from exc


# =============================================================================
# Ask → Chat Completions
# =============================================================================


@dataclass
class FinalAnswer:
    content: str
    session_id: str = ""


def collect_final_answer(lines: Iterable[str]) -> FinalAnswer:
    """Scan a buffered ask response for its first ``message_result``.

    Raises:
        NoResultError: when no result event is present or its content is empty.
    """
    session_id = ""
    for event in iter_events(lines):
        if isinstance(event, SessionStart):
            session_id = event.session_id
        elif isinstance(event, Result):
            if not event.final_text:
                break
            return FinalAnswer(content=event.final_text, session_id=session_id)
    raise NoResultError()


def build_chat_completion(
    response_id: str, model: str, content: str, created: Optional[int] = None
) -> ChatCompletionResponse:
    return {
        "id": response_id,
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": ASSISTANT_ROLE, "content": content},
                "finish_reason": FINISH_REASON_STOP,
            }
        ],
    }


def build_chat_chunk(
    response_id: str,
    model: str,
    delta: Delta,
    finish_reason: Optional[str] = None,
    created: Optional[int] = None,
) -> ChatCompletionChunk:
    return {
        "id": response_id,
        "object": "chat.completion.chunk",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }
        ],
    }
