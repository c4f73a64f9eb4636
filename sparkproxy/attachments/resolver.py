"""Rewrite client image references into forms the upstream accepts.

Every ``image_url`` part is resolved independently:

    http(s) URL ──download──┐
                            ├─> sniff ─┬─ image/*  -> inline data:image/jpeg;base64,...
    base64 / data URI ─decode┘          └─ other   -> upload slot + PUT -> private_file

A failure at any step only affects that part: it is logged and the part is
sent upstream exactly as the client wrote it.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import copy
import logging
from typing import Any, Awaitable, Iterable, Optional

from ..core.client import UpstreamClient
from ..core.exceptions import AttachmentError
from ..types.chat import ChatMessage, ContentPart
from ..types.upstream import ResolvedConversation
from .sniff import extension_for, is_image, sniff_content_type

logger = logging.getLogger("sparkproxy")

BASE64_MARKER = ";base64,"
# The upstream only takes JPEG-labelled inline images; other image subtypes
# are relabelled, not transcoded.
INLINE_IMAGE_PREFIX = "data:image/jpeg;base64,"
UPLOADED_FILE_NAME = "file"


def _image_url_of(part: Any) -> Optional[str]:
    if not isinstance(part, dict) or part.get("type") != "image_url":
        return None
    image = part.get("image_url")
    if not isinstance(image, dict):
        return None
    url = image.get("url")
    return url if isinstance(url, str) else None


def decode_base64_reference(reference: str) -> bytes:
    """Decode raw base64 or a ``data:...;base64,`` URI."""
    _, marker, tail = reference.partition(BASE64_MARKER)
    encoded = tail if marker else reference
    # MIME-wrapped base64 breaks lines with CRLF; anything else stays strict
    encoded = encoded.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AttachmentError(f"base64 decode failed: {exc}") from exc


class AttachmentResolver:
    """Resolves image references for one request at a time."""

    def __init__(self, client: UpstreamClient) -> None:
        self._client = client

    async def resolve(
        self, messages: Iterable[ChatMessage], cookie: str
    ) -> ResolvedConversation:
        """Return a resolved copy of ``messages``.

        The input is never modified. All parts are processed concurrently and
        this returns only once every one of them has finished.
        """
        resolved: list[ChatMessage] = [copy.deepcopy(message) for message in messages]

        jobs: list[Awaitable[None]] = []
        for message in resolved:
            content = message.get("content") if isinstance(message, dict) else None
            if not isinstance(content, list):
                continue
            for index, part in enumerate(content):
                reference = _image_url_of(part)
                if reference is not None:
                    jobs.append(self._resolve_part(content, index, reference, cookie))

        if jobs:
            logger.info("Resolving %d image reference(s)", len(jobs))
            await asyncio.gather(*jobs)
        return ResolvedConversation(messages=tuple(resolved))

    async def _resolve_part(
        self, content: list[ContentPart], index: int, reference: str, cookie: str
    ) -> None:
        try:
            content[index] = await self.resolve_reference(content[index], reference, cookie)
        except AttachmentError as exc:
            logger.warning("Leaving attachment unresolved: %s", exc.message)

    async def resolve_reference(
        self, part: ContentPart, reference: str, cookie: str
    ) -> ContentPart:
        """Resolve a single part, raising AttachmentError on any failure."""
        if reference.startswith(("http://", "https://")):
            data = await self._client.fetch_bytes(reference)
        else:
            data = decode_base64_reference(reference)

        if not data:
            raise AttachmentError("attachment is empty")

        content_type = sniff_content_type(data)
        if is_image(content_type):
            logger.debug("Inlining %s attachment (%d bytes)", content_type, len(data))
            image = dict(part.get("image_url") or {})
            image["url"] = INLINE_IMAGE_PREFIX + base64.b64encode(data).decode("ascii")
            inlined: ContentPart = dict(part)
            inlined["image_url"] = image
            return inlined

        slot = await self._client.request_upload_slot(cookie)
        await self._client.upload(slot, data)
        logger.info("Uploaded %s attachment (%d bytes)", content_type, len(data))
        return {
            "type": "private_file",
            "private_file": {
                "name": UPLOADED_FILE_NAME,
                "type": content_type,
                "size": len(data),
                "ext": extension_for(content_type),
                "private_storage_url": slot.storage_url,
            },
        }
