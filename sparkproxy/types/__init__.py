"""Type definitions for the proxy."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    ContentPart,
    Delta,
    ImageURL,
    ModelCard,
    PrivateFile,
)
from .upstream import (
    AskRequest,
    FieldDelta,
    Ignored,
    ResolvedConversation,
    Result,
    SessionStart,
    UploadSlot,
    UpstreamEvent,
)

__all__ = [
    "AskRequest",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "ContentPart",
    "Delta",
    "FieldDelta",
    "Ignored",
    "ImageURL",
    "ModelCard",
    "PrivateFile",
    "ResolvedConversation",
    "Result",
    "SessionStart",
    "UploadSlot",
    "UpstreamEvent",
]
