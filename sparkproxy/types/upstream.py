"""Types for the upstream (Genspark) side of the bridge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .chat import ChatMessage

ASK_KIND = "COPILOT_MOA_CHAT"
ASK_QUERY_STRING = "type=chat"

# Upstream SSE event discriminators
EVENT_PROJECT_START = "project_start"
EVENT_MESSAGE_FIELD_DELTA = "message_field_delta"
EVENT_MESSAGE_RESULT = "message_result"

# The only field whose deltas make up the visible answer
ANSWER_FIELD = "session_state.answer"


@dataclass(frozen=True)
class ResolvedConversation:
    """Messages whose image references have been through the resolver.

    Only the resolver builds these; the request translator refuses anything
    else, which keeps resolution strictly ahead of serialization.
    """

    messages: tuple[ChatMessage, ...]

    def as_list(self) -> list[ChatMessage]:
        return list(self.messages)


@dataclass(frozen=True)
class AskRequest:
    """Body of ``POST /api/copilot/ask``."""

    messages: tuple[ChatMessage, ...]
    models: tuple[str, ...]
    run_with_another_model: bool = False
    kind: str = ASK_KIND
    query_string: str = ASK_QUERY_STRING
    action_params: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "current_query_string": self.query_string,
            "messages": list(self.messages),
            "action_params": dict(self.action_params),
            "extra_data": {
                "models": list(self.models),
                "run_with_another_model": self.run_with_another_model,
                "writingContent": None,
            },
        }


@dataclass(frozen=True)
class UploadSlot:
    """Pre-signed upload target returned by the upload-slot endpoint."""

    upload_url: str
    storage_url: str


# =============================================================================
# Decoded upstream events
# =============================================================================


@dataclass(frozen=True)
class SessionStart:
    session_id: str


@dataclass(frozen=True)
class FieldDelta:
    field_name: str
    delta: str


@dataclass(frozen=True)
class Result:
    final_text: str


@dataclass(frozen=True)
class Ignored:
    """Noise: non-data lines, malformed JSON, unknown or irrelevant events."""


UpstreamEvent = Union[SessionStart, FieldDelta, Result, Ignored]

IGNORED = Ignored()
