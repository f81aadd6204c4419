"""Endpoint handlers.

Each handler is a stateless ``async (HttpRequest) -> HttpResponse``.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import socket

from .config import DEFAULT_CONFIG, ServerConfig
from .http.netaddr import AddressError, split_host_port
from .http.router import Router
from .http.server import Handler, HttpRequest, HttpResponse


logger = logging.getLogger(__name__)

HEALTH_RESPONSE = b'{"status":"ready"}'


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


def make_hello_handler(version: str) -> Handler:
    async def handle_hello(req: HttpRequest) -> HttpResponse:
        logger.info("Serving requests: %s", req.path)
        return HttpResponse.text(
            "Hello World!\n"
            f"Hostname is: {_hostname()}\n"
            f"Version is: {version}\n"
        )

    return handle_hello


def _malformed(remote_addr: str) -> HttpResponse:
    # json.dumps gives a double-quoted, escaped rendering of the address.
    return HttpResponse.text(
        f"user IP address {json.dumps(remote_addr)} is not in the format IP:Port"
    )


async def handle_remote_ip(req: HttpRequest) -> HttpResponse:
    """Echo the client's IP, port and X-Forwarded-For header."""
    try:
        ip, port = split_host_port(req.remote_addr)
    except AddressError:
        return _malformed(req.remote_addr)

    # Zoned IPv6 literals (fe80::1%eth0) are not plain IP addresses.
    if "%" in ip:
        return _malformed(req.remote_addr)
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return _malformed(req.remote_addr)

    # Client-supplied and unverified; shown for diagnostics only.
    forward_ip = req.headers.get("x-forwarded-for", "")

    return HttpResponse.text(
        f"IP: {ip}\n"
        f"Port: {port}\n"
        f"Forwarded for IP: {forward_ip}\n"
    )


async def handle_health(_req: HttpRequest) -> HttpResponse:
    return HttpResponse(
        status=200,
        headers={"content-type": "application/json"},
        body=HEALTH_RESPONSE,
    )


def build_router(config: ServerConfig = DEFAULT_CONFIG) -> Router:
    router = Router()
    router.get("/", make_hello_handler(config.version))
    router.get("/getip", handle_remote_ip)
    router.get("/health", handle_health)
    return router
