"""Hello-world HTTP service with graceful shutdown, built on AnyIO."""

from .config import DEFAULT_CONFIG, ServerConfig
from .errors import BindError, ServerError, ShutdownTimeout
from .handlers import build_router, handle_health, handle_remote_ip, make_hello_handler
from .http import HttpRequest, HttpResponse, HttpServer, Router
from .lifecycle import Lifecycle, LifecycleState, main

__version__ = DEFAULT_CONFIG.version

__all__ = [
    # Configuration
    "ServerConfig",
    "DEFAULT_CONFIG",
    # Errors
    "ServerError",
    "BindError",
    "ShutdownTimeout",
    # HTTP
    "HttpRequest",
    "HttpResponse",
    "HttpServer",
    "Router",
    # Endpoints
    "build_router",
    "handle_health",
    "handle_remote_ip",
    "make_hello_handler",
    # Lifecycle
    "Lifecycle",
    "LifecycleState",
    "main",
]
