"""HTTP calls to the upstream site, its blob storage, and image hosts."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional

import httpx

from ..types.upstream import UploadSlot
from .exceptions import AttachmentError, UpstreamError
from .upstream import (
    ACCEPT_ANY,
    ACCEPT_JSON,
    UpstreamSettings,
    build_ask_headers,
    build_site_headers,
    build_upload_headers,
    format_httpx_error,
    safe_headers_for_log,
)
from .upstream_transport import get_upstream_transport

logger = logging.getLogger("sparkproxy")

# How much of an upstream error body ends up in the client-facing message
ERROR_BODY_EXCERPT = 300

# Raised for URLs that cannot be parsed at all; not httpx.HTTPError subclasses
MALFORMED_URL_ERRORS = (httpx.InvalidURL, ValueError)


class UpstreamStream:
    """An open streaming ask response. Close it exactly once when done."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def aiter_lines(self) -> AsyncIterator[str]:
        return self._response.aiter_lines()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        await self._client.aclose()


class UpstreamClient:
    """Issues single-attempt requests; no retries anywhere."""

    def __init__(
        self,
        settings: UpstreamSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def _client_for(self, url: str, timeout: httpx.Timeout | float) -> httpx.AsyncClient:
        transport = self._transport or get_upstream_transport(url)
        return httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        )

    # ------------------------------------------------------------------
    # Ask
    # ------------------------------------------------------------------

    async def open_ask_stream(self, body: bytes, cookie: str) -> UpstreamStream:
        """Send the ask request in streaming mode and check its status.

        Raises UpstreamError before any byte reaches the client when the
        upstream is unreachable or answers with an error status.
        """
        url = self.settings.ask_url
        headers = build_ask_headers(self.settings, cookie, is_stream=True)
        timeout = self.settings.request_timeout
        stream_timeout = httpx.Timeout(
            connect=timeout, read=None, write=timeout, pool=timeout
        )
        client = self._client_for(url, stream_timeout)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Ask headers: %s", safe_headers_for_log(headers))
        try:
            request = client.build_request("POST", url, headers=headers, content=body)
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            detail = format_httpx_error(exc, url=url, timeout=timeout)
            logger.error("Streaming ask to %s failed: %s", url, detail)
            raise UpstreamError(f"upstream request error: {detail}") from exc

        stream = UpstreamStream(client, resp)
        if resp.status_code >= 400:
            try:
                data = await resp.aread()
            except httpx.HTTPError:
                data = b""
            finally:
                await stream.aclose()
            raise _status_error(resp.status_code, data)

        logger.info("Streaming ask accepted by upstream, status %s", resp.status_code)
        return stream

    async def ask(self, body: bytes, cookie: str) -> str:
        """Send the ask request and buffer the whole body."""
        url = self.settings.ask_url
        headers = build_ask_headers(self.settings, cookie, is_stream=False)
        timeout = self.settings.request_timeout
        try:
            async with self._client_for(url, timeout) as client:
                resp = await client.post(url, headers=headers, content=body)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url=url, timeout=timeout)
            logger.error("Ask to %s failed: %s", url, detail)
            raise UpstreamError(f"upstream request error: {detail}") from exc

        logger.debug("Received ask response: status %s, %d bytes", resp.status_code, len(resp.content))
        if resp.status_code >= 400:
            raise _status_error(resp.status_code, resp.content)
        return resp.text

    # ------------------------------------------------------------------
    # Session cleanup
    # ------------------------------------------------------------------

    async def delete_session(self, session_id: str, cookie: str) -> int:
        """Delete an upstream project. Returns the upstream status code."""
        url = self.settings.delete_url(session_id)
        headers = build_site_headers(self.settings, cookie, ACCEPT_JSON)
        async with self._client_for(url, self.settings.request_timeout) as client:
            resp = await client.get(url, headers=headers)
        return resp.status_code

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def fetch_bytes(self, url: str) -> bytes:
        """Download a client-referenced file."""
        try:
            async with self._client_for(url, self.settings.request_timeout) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            raise AttachmentError(
                f"download failed: {format_httpx_error(exc, url=url)}"
            ) from exc
        except MALFORMED_URL_ERRORS as exc:
            raise AttachmentError(f"invalid download URL {url!r}: {exc}") from exc
        if not resp.is_success:
            raise AttachmentError(f"download of {url} returned status {resp.status_code}")
        return resp.content

    async def request_upload_slot(self, cookie: str) -> UploadSlot:
        url = self.settings.upload_slot_url
        headers = build_site_headers(self.settings, cookie, ACCEPT_ANY)
        try:
            async with self._client_for(url, self.settings.request_timeout) as client:
                resp = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise AttachmentError(
                f"upload slot request failed: {format_httpx_error(exc, url=url)}"
            ) from exc
        except MALFORMED_URL_ERRORS as exc:
            raise AttachmentError(f"invalid upload slot URL {url!r}: {exc}") from exc
        if not resp.is_success:
            raise AttachmentError(f"upload slot request returned status {resp.status_code}")

        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise AttachmentError(f"upload slot response is not JSON: {exc}") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise AttachmentError("upload slot response has no data object")
        upload_url = data.get("upload_image_url")
        storage_url = data.get("private_storage_url")
        if not isinstance(upload_url, str) or not upload_url:
            raise AttachmentError("upload slot response has no upload_image_url")
        if not isinstance(storage_url, str):
            raise AttachmentError("upload slot response has no private_storage_url")
        return UploadSlot(upload_url=upload_url, storage_url=storage_url)

    async def upload(self, slot: UploadSlot, data: bytes) -> None:
        """PUT raw bytes into the pre-signed blob URL."""
        url = slot.upload_url
        headers = build_upload_headers(self.settings, len(data))
        try:
            async with self._client_for(url, self.settings.upload_timeout) as client:
                resp = await client.put(url, headers=headers, content=data)
        except httpx.HTTPError as exc:
            raise AttachmentError(
                f"upload failed: {format_httpx_error(exc, url=url, timeout=self.settings.upload_timeout)}"
            ) from exc
        except MALFORMED_URL_ERRORS as exc:
            raise AttachmentError(f"invalid upload URL {url!r}: {exc}") from exc
        if not resp.is_success:
            raise AttachmentError(f"upload returned status {resp.status_code}")


def _status_error(status_code: int, body: bytes) -> UpstreamError:
    excerpt = body[:ERROR_BODY_EXCERPT].decode("utf-8", errors="replace").strip()
    message = f"upstream returned status {status_code}"
    if excerpt:
        message = f"{message}: {excerpt}"
    logger.warning(message)
    return UpstreamError(message, upstream_status=status_code)
