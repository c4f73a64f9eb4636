"""Types for the OpenAI-compatible chat surface.

The inbound request and the outbound completion/chunk shapes are plain JSON
objects; these TypedDicts document them. Content parts also cover the two
forms an image reference takes once the attachment resolver is done with it.
"""

from typing_extensions import TypedDict


class ImageURL(TypedDict, total=False):
    """Image reference inside an ``image_url`` content part.

    Attributes:
        url: An http(s) URL, raw base64, or a ``data:<mime>;base64,`` URI.
            After resolution it is always ``data:image/jpeg;base64,...``.
        detail: Optional OpenAI detail hint, passed through untouched.
    """
    url: str
    detail: str | None


class PrivateFile(TypedDict, total=False):
    """Descriptor of a non-image attachment uploaded to upstream storage.

    Attributes:
        name: Always "file"; the inbound request carries no filename.
        type: Sniffed content type, parameters included.
        size: Exact number of uploaded bytes.
        ext: Subtype of the sniffed content type, parameters stripped.
        private_storage_url: Storage URL handed out by the upload slot.
    """
    name: str
    type: str
    size: int
    ext: str
    private_storage_url: str


class ContentPart(TypedDict, total=False):
    """A content part for multi-modal messages.

    Attributes:
        type: "text", "image_url", or "private_file" (post-resolution).
        text: Text content (for "text" type).
        image_url: Image reference (for "image_url" type).
        private_file: Uploaded file descriptor (for "private_file" type).
    """
    type: str
    text: str | None
    image_url: ImageURL | None
    private_file: PrivateFile | None


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation.

    Attributes:
        role: "system", "user" or "assistant".
        content: A string, or an ordered list of ContentPart.
    """
    role: str
    content: str | list[ContentPart]


class Delta(TypedDict, total=False):
    role: str
    content: str


class Choice(TypedDict, total=False):
    """A choice in a chat completion response or chunk.

    Attributes:
        index: Always 0; the upstream produces a single answer.
        delta: Incremental content for streaming chunks.
        message: The complete message for non-streaming responses.
        finish_reason: "stop" on the terminal chunk/response, else None.
    """
    index: int
    delta: Delta
    message: ChatMessage
    finish_reason: str | None


class ChatCompletionChunk(TypedDict):
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]


class ChatCompletionResponse(TypedDict):
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]


class ModelCard(TypedDict):
    id: str
    object: str
    created: int
    owned_by: str

