"""Models listing endpoint - OpenAI compatible."""

import logging

from ...core.registry import get_bridge
from ...types.chat import ModelCard

logger = logging.getLogger("sparkproxy")

OWNED_BY = "sparkproxy"


async def list_models() -> dict:
    """List available models in OpenAI API format.

    GET /v1/models
    """
    logger.info("Received models list request")

    bridge = get_bridge()
    models: list[ModelCard] = []
    for model_name in await bridge.list_model_names():
        models.append({
            "id": model_name,
            "object": "model",
            "created": bridge.created_at,
            "owned_by": OWNED_BY,
        })

    return {
        "object": "list",
        "data": models
    }
