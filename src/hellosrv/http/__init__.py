"""HTTP plumbing: request/response types, router, AnyIO server and address helpers."""

from .netaddr import AddressError, join_host_port, split_host_port
from .router import Router
from .server import HttpRequest, HttpResponse, HttpServer

__all__ = [
    "AddressError",
    "HttpRequest",
    "HttpResponse",
    "HttpServer",
    "Router",
    "join_host_port",
    "split_host_port",
]
