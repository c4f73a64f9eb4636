"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from typing import Mapping

from fastapi import Request, Response

from ...core.exceptions import InvalidRequestError
from ...core.registry import get_bridge

logger = logging.getLogger("sparkproxy")


async def handle_openai_request(request: Request) -> Response:
    """Validate an inbound chat request and hand it to the bridge.

    Args:
        request: The FastAPI request object.

    Returns:
        A JSONResponse or StreamingResponse with the completion results.
    """
    logger.info(f"Handling {request.method} request to {request.url.path}")

    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error(f"Invalid JSON payload: {exc}")
        raise InvalidRequestError("Invalid JSON payload", code="invalid_json") from exc

    if not isinstance(payload, Mapping):
        logger.error("Payload must be a JSON object")
        raise InvalidRequestError(
            "Request body must be a JSON object", code="invalid_json_shape"
        )

    model_name = payload.get("model")
    if not isinstance(model_name, str) or not model_name.strip():
        logger.error("Request missing model name")
        raise InvalidRequestError(
            "You must provide a model parameter", code="missing_parameter"
        )
    model_name = model_name.strip()

    messages = payload.get("messages")
    if not messages or not isinstance(messages, list):
        logger.error("Request missing or invalid messages array")
        raise InvalidRequestError(
            "You must provide a messages array", code="missing_parameter"
        )
    if not all(isinstance(message, Mapping) for message in messages):
        logger.error("Request messages must be JSON objects")
        raise InvalidRequestError(
            "Every message must be a JSON object", code="invalid_message"
        )

    is_stream = bool(payload.get("stream"))
    logger.info(f"Processing request for model {model_name}, stream={is_stream}")

    try:
        bridge = get_bridge()
        response = await bridge.forward_chat(
            model_name,
            messages,
            is_stream,
            disconnect_checker=request.is_disconnected,
        )
    except Exception as e:
        logger.error(f"Error processing request for model {model_name}: {e}")
        raise
    logger.info(f"Request for model {model_name} accepted by upstream")
    return response


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions
    """
    logger.info("Received chat completions request")
    return await handle_openai_request(request)
