"""Testing utilities for in-process upstream simulations."""

from .fake_upstream import AskResponse, FakeGenspark, build_ask_events

__all__ = [
    "AskResponse",
    "FakeGenspark",
    "build_ask_events",
]
