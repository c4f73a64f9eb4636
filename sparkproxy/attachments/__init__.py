"""Attachment resolution for image references in chat messages."""

from .resolver import AttachmentResolver, decode_base64_reference
from .sniff import extension_for, is_image, sniff_content_type

__all__ = [
    "AttachmentResolver",
    "decode_base64_reference",
    "extension_for",
    "is_image",
    "sniff_content_type",
]
