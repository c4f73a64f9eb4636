"""Ask API translation helpers.

Provides translation between OpenAI Chat Completions and the upstream ask
API, in both directions, including the streaming adapter.
"""

from .stream_adapter import AskToChatStreamAdapter, StreamState
from .translator import (
    FinalAnswer,
    build_ask_request,
    build_chat_chunk,
    build_chat_completion,
    collect_final_answer,
    generate_response_id,
    serialize_ask_request,
)

__all__ = [
    "AskToChatStreamAdapter",
    "FinalAnswer",
    "StreamState",
    "build_ask_request",
    "build_chat_chunk",
    "build_chat_completion",
    "collect_final_answer",
    "generate_response_id",
    "serialize_ask_request",
]
