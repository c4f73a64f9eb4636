"""Main FastAPI application for the sparkproxy adapter."""

import os
import socket
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.routes import chat_completions, list_models
from .config_loader import load_config
from .core.bridge import ChatBridge
from .core.exceptions import ProxyError
from .core.registry import set_bridge
from .logging import logger, setup_logging

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 7055


def resolve_server_address(config: Mapping[str, Any]) -> tuple[str, int]:
    """Work out the bind address.

    Environment variables (SPARKPROXY_HOST, SPARKPROXY_PORT) take priority
    over proxy_settings.server in the config file.
    """
    proxy_settings = config.get("proxy_settings") or {}
    server_cfg = proxy_settings.get("server") or {}

    host = os.getenv("SPARKPROXY_HOST")
    if host is None:
        host = str(server_cfg.get("host", DEFAULT_HOST))

    port_str = os.getenv("SPARKPROXY_PORT")
    if port_str is None:
        port_str = server_cfg.get("port", DEFAULT_PORT)
    try:
        port = int(port_str)
    except (TypeError, ValueError):
        port = DEFAULT_PORT
    return host, port


def _logging_level(config: Mapping[str, Any]) -> Optional[str]:
    proxy_settings = config.get("proxy_settings") or {}
    logging_cfg = proxy_settings.get("logging") or {}
    level = logging_cfg.get("level")
    return str(level) if level is not None else None


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Parsed configuration. Loaded from SPARKPROXY_CONFIG (or the
            default config file) when omitted.
        transport: Optional httpx transport used for every upstream call.

    Returns:
        The configured FastAPI application instance.
    """
    if config is None:
        config = load_config()

    logger = setup_logging(_logging_level(config))
    host, port = resolve_server_address(config)

    bridge = ChatBridge(config, transport=transport)
    set_bridge(bridge)
    logger.info(
        f"Chat bridge initialized for {bridge.settings.base_url} "
        f"with {len(bridge.cookies)} cookies and {len(bridge.models)} models"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log the startup banner, then drain session cleanups on shutdown."""
        print("""
+-----------------------------------------+
|   sparkproxy :: OpenAI -> Genspark ask  |
+-----------------------------------------+
        """)
        logger.info("sparkproxy server starting up...")
        logger.info("Configured bind address %s:%s", host, port)
        if host == "0.0.0.0":
            hostname = socket.gethostname()
            logger.info("Reachable on local network at http://%s:%s", hostname, port)
        logger.info(f"Auto-delete upstream chats: {bridge.settings.auto_delete_chat}")
        logger.info(f"Available models: {bridge.models}")
        yield
        await bridge.cleaner.drain()
        logger.info("All session cleanups completed")

    app = FastAPI(title="sparkproxy", lifespan=lifespan)
    app.state.bridge = bridge
    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routes
    app.post("/v1/chat/completions")(chat_completions)
    app.get("/v1/models")(list_models)
    logger.info("FastAPI application created")

    return app


__all__ = [
    "create_app",
    "proxy_error_handler",
    "resolve_server_address",
    "unhandled_error_handler",
]
