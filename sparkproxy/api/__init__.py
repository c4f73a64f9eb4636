"""API module for the proxy."""

from .routes import chat_completions, handle_openai_request, list_models

__all__ = [
    "chat_completions",
    "handle_openai_request",
    "list_models",
]
