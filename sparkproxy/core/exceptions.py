"""Core exceptions for the proxy."""


class ProxyError(Exception):
    """Base exception for proxy errors.

    Every subclass carries the HTTP status the inbound caller receives;
    the app turns it into a ``{"error": message}`` JSON body.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
    pass


class InvalidRequestError(ProxyError):
    """Raised when an incoming request is invalid."""

    status_code = 400

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class UpstreamError(ProxyError):
    """The single upstream ask call failed (transport error or non-2xx)."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class NoResultError(ProxyError):
    """The upstream answered but never produced a usable result."""

    def __init__(self, message: str = "No valid response content") -> None:
        super().__init__(message)


class PayloadSerializationError(ProxyError):
    """Raised when the upstream payload cannot be encoded."""
    pass


class AttachmentError(ProxyError):
    """A single attachment could not be resolved.

    Never surfaced to callers: the resolver catches it per part and leaves
    the client's reference in place.
    """
    pass
