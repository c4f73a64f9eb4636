"""Core module initialization."""

from .cleanup import SessionCleaner
from .client import UpstreamClient, UpstreamStream
from .credentials import CookiePool
from .exceptions import (
    AttachmentError,
    ConfigurationError,
    InvalidRequestError,
    NoResultError,
    PayloadSerializationError,
    ProxyError,
    UpstreamError,
)
from .registry import get_bridge, set_bridge
from .upstream import UpstreamSettings, format_httpx_error

__all__ = [
    "AttachmentError",
    "ConfigurationError",
    "CookiePool",
    "InvalidRequestError",
    "NoResultError",
    "PayloadSerializationError",
    "ProxyError",
    "SessionCleaner",
    "UpstreamClient",
    "UpstreamError",
    "UpstreamSettings",
    "UpstreamStream",
    "format_httpx_error",
    "get_bridge",
    "set_bridge",
]
