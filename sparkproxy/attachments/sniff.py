"""Magic-byte content type detection.

Implements the WHATWG "MIME Sniffing" signature table: only the first 512
bytes are examined and the file name never matters. Markup signatures may be
preceded by whitespace; everything else must match at offset zero.
"""

from dataclasses import dataclass
from typing import Callable, Optional

SNIFF_LEN = 512

TEXT_PLAIN_UTF8 = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

_WHITESPACE = b"\t\n\x0c\r "

# Markup tags that identify HTML when followed by a space or '>'
_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)


@dataclass(frozen=True)
class _Masked:
    mask: bytes
    pattern: bytes
    content_type: str
    skip_whitespace: bool = False

    def __call__(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_whitespace:
            data = data[first_non_ws:]
        if len(data) < len(self.pattern):
            return None
        for index, expected in enumerate(self.pattern):
            if data[index] & self.mask[index] != expected:
                return None
        return self.content_type


@dataclass(frozen=True)
class _Exact:
    signature: bytes
    content_type: str

    def __call__(self, data: bytes, first_non_ws: int) -> Optional[str]:
        return self.content_type if data.startswith(self.signature) else None


@dataclass(frozen=True)
class _HTMLTag:
    tag: bytes

    def __call__(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        for index, expected in enumerate(self.tag):
            actual = data[index]
            if 0x41 <= expected <= 0x5A:
                # ASCII letters in the tag match case-insensitively
                actual &= 0xDF
            if actual != expected:
                return None
        if data[len(self.tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"


def _mp4(data: bytes, first_non_ws: int) -> Optional[str]:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            # Skips the minor version
            continue
        if data[start:start + 3] == b"mp4":
            return "video/mp4"
    return None


def _mp3_without_id3(data: bytes, first_non_ws: int) -> Optional[str]:
    # MPEG audio frame sync: 11 set bits, layer III
    if len(data) < 4:
        return None
    if data[0] != 0xFF or data[1] & 0xE0 != 0xE0:
        return None
    layer = (data[1] >> 1) & 0x03
    bitrate = data[2] >> 4
    sample_rate = (data[2] >> 2) & 0x03
    if layer == 0 or bitrate in (0, 15) or sample_rate == 3:
        return None
    return "audio/mpeg"


def _text_or_binary(data: bytes, first_non_ws: int) -> Optional[str]:
    for byte in data:
        if byte <= 0x08 or byte == 0x0B or 0x0E <= byte <= 0x1A or 0x1C <= byte <= 0x1F:
            return OCTET_STREAM
    return TEXT_PLAIN_UTF8


_Matcher = Callable[[bytes, int], Optional[str]]

_SIGNATURES: tuple[_Matcher, ...] = (
    *(_HTMLTag(tag) for tag in _HTML_TAGS),
    _Masked(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", skip_whitespace=True),
    _Exact(b"%PDF-", "application/pdf"),
    _Exact(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    _Masked(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    _Masked(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    _Masked(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", TEXT_PLAIN_UTF8),
    # Images
    _Exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _Exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _Exact(b"BM", "image/bmp"),
    _Exact(b"GIF87a", "image/gif"),
    _Exact(b"GIF89a", "image/gif"),
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _Exact(b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    _Exact(b"\xff\xd8\xff", "image/jpeg"),
    # Audio and video
    _Masked(b"\xff\xff\xff\xff", b".snd", "audio/basic"),
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ),
    _Masked(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    _mp3_without_id3,
    _Masked(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg"),
    _Masked(b"\xff\xff\xff\xff\xff\xff\xff\xff", b"MThd\x00\x00\x00\x06", "audio/midi"),
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ),
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ),
    _mp4,
    _Exact(b"\x1a\x45\xdf\xa3", "video/webm"),
    # Fonts
    _Exact(b"OTTO", "font/otf"),
    _Exact(b"\x00\x01\x00\x00", "font/ttf"),
    _Exact(b"ttcf", "font/collection"),
    _Exact(b"wOFF", "font/woff"),
    _Exact(b"wOF2", "font/woff2"),
    # Archives
    _Exact(b"\x1f\x8b\x08", "application/x-gzip"),
    _Exact(b"PK\x03\x04", "application/zip"),
    _Exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _Exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _Exact(b"\x00asm", "application/wasm"),
    _text_or_binary,
)


def sniff_content_type(data: bytes) -> str:
    """Return the content type of ``data`` judged by its leading bytes.

    Always returns a value: unknown binary data is
    ``application/octet-stream``, unknown text is ``text/plain; charset=utf-8``.
    """
    head = bytes(data[:SNIFF_LEN])
    first_non_ws = 0
    while first_non_ws < len(head) and head[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for matcher in _SIGNATURES:
        content_type = matcher(head, first_non_ws)
        if content_type is not None:
            return content_type
    # _text_or_binary always answers; kept for type checkers
    return OCTET_STREAM


def is_image(content_type: str) -> bool:
    return content_type.startswith("image/")


def extension_for(content_type: str) -> str:
    """Subtype of a content type, parameters removed ("text/plain; x=y" -> "plain")."""
    media_type = content_type.split(";", 1)[0].strip()
    _, _, subtype = media_type.partition("/")
    return subtype or "bin"
