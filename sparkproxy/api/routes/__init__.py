"""API routes for the proxy."""

from .chat import chat_completions, handle_openai_request
from .models import list_models

__all__ = [
    "chat_completions",
    "handle_openai_request",
    "list_models",
]
