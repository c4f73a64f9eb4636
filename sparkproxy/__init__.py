"""sparkproxy - OpenAI-compatible front for the Genspark ask API

Accepts OpenAI chat completion requests, resolves image attachments into
forms the upstream understands, issues one ask call and translates the
answer back, streaming or buffered.

Example:
    >>> from sparkproxy.main import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="0.0.0.0", port=7055)
"""

from .config_loader import load_config
from .logging import logger, setup_logging

__all__ = [
    "load_config",
    "logger",
    "setup_logging",
]
