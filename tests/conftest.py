"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Generator

import httpx
import pytest

from sparkproxy.core.upstream_transport import (
    clear_upstream_transports,
    register_upstream_transport,
)
from sparkproxy.testing import FakeGenspark

UPSTREAM_HOST = "www.genspark.ai"
BLOB_HOST = "blob.fake.test"
IMAGE_HOST = "images.fake.test"

# Smallest byte sequences the sniffer recognizes
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01"
PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n"


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    yield
    clear_upstream_transports()


@pytest.fixture
def fake_genspark(clear_transport_registry) -> FakeGenspark:
    """A fake upstream reachable at the site, blob and image hosts."""
    fake = FakeGenspark(blob_base_url=f"https://{BLOB_HOST}")
    transport = httpx.ASGITransport(app=fake.app)
    for host in (UPSTREAM_HOST, BLOB_HOST, IMAGE_HOST):
        register_upstream_transport(host, transport)
    return fake


@pytest.fixture
def proxy_config() -> dict[str, Any]:
    """Minimal configuration pointing at the fake upstream."""
    return {
        "proxy_settings": {
            "server": {"host": "127.0.0.1", "port": 9999},
            "logging": {"level": "DEBUG"},
        },
        "upstream": {
            "base_url": f"https://{UPSTREAM_HOST}",
            "cookies": ["session_id=abc"],
            "auto_delete_chat": True,
            "request_timeout": 30,
            "upload_timeout": 5,
        },
        "model_list": ["gpt-4o", "claude-3-5-sonnet"],
    }


def image_url(name: str) -> str:
    return f"https://{IMAGE_HOST}/files/{name}"
