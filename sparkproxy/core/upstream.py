"""Upstream settings and request shaping for the Genspark endpoints."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote

logger = logging.getLogger("sparkproxy")

DEFAULT_BASE_URL = "https://www.genspark.ai"
# The upstream can take a very long time to answer; keep the long-poll bounded
DEFAULT_REQUEST_TIMEOUT = 10 * 60 * 60
DEFAULT_UPLOAD_TIMEOUT = 30
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

ASK_PATH = "/api/copilot/ask"
DELETE_PATH = "/api/project/delete"
UPLOAD_SLOT_PATH = "/api/get_upload_personal_image_url"

ACCEPT_JSON = "application/json"
ACCEPT_EVENT_STREAM = "text/event-stream"
ACCEPT_ANY = "*/*"

SENSITIVE_HEADERS = {"cookie", "authorization"}


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off", ""}:
        return False
    return default


def _parse_timeout(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid timeout value %r; using %ss", value, default)
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class UpstreamSettings:
    """Where and how to reach the upstream service."""

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT
    auto_delete_chat: bool = True
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "UpstreamSettings":
        section = config.get("upstream") or {}
        base_url = str(section.get("base_url") or DEFAULT_BASE_URL).strip().rstrip("/")
        return cls(
            base_url=base_url or DEFAULT_BASE_URL,
            request_timeout=_parse_timeout(
                section.get("request_timeout"), DEFAULT_REQUEST_TIMEOUT
            ),
            upload_timeout=_parse_timeout(
                section.get("upload_timeout"), DEFAULT_UPLOAD_TIMEOUT
            ),
            auto_delete_chat=_parse_bool(section.get("auto_delete_chat"), default=True),
            user_agent=str(section.get("user_agent") or DEFAULT_USER_AGENT),
        )

    @property
    def ask_url(self) -> str:
        return f"{self.base_url}{ASK_PATH}"

    @property
    def upload_slot_url(self) -> str:
        return f"{self.base_url}{UPLOAD_SLOT_PATH}"

    def delete_url(self, session_id: str) -> str:
        return f"{self.base_url}{DELETE_PATH}?project_id={quote(session_id, safe='')}"


def build_site_headers(
    settings: UpstreamSettings, cookie: str, accept: str
) -> dict[str, str]:
    """Headers shared by the ask, delete-session and upload-slot calls."""
    return {
        "Content-Type": "application/json",
        "Accept": accept,
        "Origin": settings.base_url,
        "Referer": f"{settings.base_url}/",
        "Cookie": cookie,
        "User-Agent": settings.user_agent,
    }


def build_ask_headers(
    settings: UpstreamSettings, cookie: str, is_stream: bool
) -> dict[str, str]:
    accept = ACCEPT_EVENT_STREAM if is_stream else ACCEPT_JSON
    return build_site_headers(settings, cookie, accept)


def build_upload_headers(settings: UpstreamSettings, size: int) -> dict[str, str]:
    """Headers for the blob PUT. The storage host is cross-site, so no cookie."""
    return {
        "Accept": ACCEPT_ANY,
        "x-ms-blob-type": "BlockBlob",
        "Content-Type": "application/octet-stream",
        "Content-Length": str(size),
        "Origin": settings.base_url,
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "cross-site",
        "User-Agent": settings.user_agent,
    }


def safe_headers_for_log(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers with credentials masked."""
    masked: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = "***"
        else:
            masked[key] = value
    return masked


def format_httpx_error(
    exc: Any, url: Optional[str] = None, timeout: Optional[float] = None
) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    import httpx

    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when the request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException) and timeout is not None:
        parts.append(f"timeout={timeout}s")

    return "; ".join(parts)
