"""Session cookie pool."""

import logging
import random
from typing import Any, Mapping, Optional, Sequence

from .exceptions import ConfigurationError

logger = logging.getLogger("sparkproxy")


def _split_cookies(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        candidates = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        candidates = [str(item) for item in raw if item is not None]
    else:
        candidates = [str(raw)]
    return [cookie.strip() for cookie in candidates if cookie and cookie.strip()]


class CookiePool:
    """Read-only set of upstream session cookies; one is picked per request."""

    def __init__(self, cookies: Sequence[str], rng: Optional[random.Random] = None) -> None:
        self._cookies = tuple(cookies)
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CookiePool":
        section = config.get("upstream") or {}
        cookies = _split_cookies(section.get("cookies"))
        if not cookies:
            logger.warning("No upstream cookies configured; chat requests will fail")
        return cls(cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def pick(self) -> str:
        if not self._cookies:
            raise ConfigurationError("No upstream session cookie is configured")
        return self._rng.choice(self._cookies)
