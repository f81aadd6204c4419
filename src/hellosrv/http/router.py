"""Exact-match request router.

Dispatches ``(method, path)`` to async handlers. Unmatched requests get:
  - 200 with an ``Allow`` header for ``OPTIONS`` on a known path
  - 405 with an ``Allow`` header when the path exists under other methods
  - a redirect when the path only differs by a trailing slash
  - 404 otherwise
"""

from __future__ import annotations

import logging
from typing import Mapping

from .server import Handler, HttpRequest, HttpResponse


logger = logging.getLogger(__name__)


class Router:
    """A very small router that dispatches (method, path) to async handlers."""

    def __init__(self, routes: Mapping[tuple[str, str], Handler] | None = None):
        self._routes: dict[tuple[str, str], Handler] = {}
        for (method, path), handler in (routes or {}).items():
            self.add(method, path, handler)

    def add(self, method: str, path: str, handler: Handler) -> None:
        key = (method.upper(), path)
        if key in self._routes:
            raise ValueError(f"a handler is already registered for {key[0]} {path}")
        self._routes[key] = handler

    def get(self, path: str, handler: Handler) -> None:
        self.add("GET", path, handler)

    @property
    def routes(self) -> dict[tuple[str, str], Handler]:
        return dict(self._routes)

    def allowed_methods(self, path: str) -> list[str]:
        return sorted({m for (m, p) in self._routes if p == path})

    async def dispatch(self, req: HttpRequest) -> HttpResponse:
        method = req.method.upper()
        handler = self._routes.get((method, req.path))
        if handler is not None:
            try:
                return await handler(req)
            except Exception as e:
                logger.exception("handler for %s %s failed", method, req.path)
                return HttpResponse.text(f"handler error: {e!r}", status=500)

        allowed = self.allowed_methods(req.path)
        if allowed:
            allow = ", ".join(sorted({*allowed, "OPTIONS"}))
            if method == "OPTIONS":
                return HttpResponse(status=200, headers={"allow": allow})
            return HttpResponse.text(
                "Method Not Allowed\n", status=405, headers={"allow": allow}
            )

        if method != "CONNECT" and req.path != "/":
            alt = req.path[:-1] if req.path.endswith("/") else req.path + "/"
            if (method, alt) in self._routes:
                location = alt + (f"?{req.query}" if req.query else "")
                status = 301 if method == "GET" else 308
                return HttpResponse(status=status, headers={"location": location})

        return HttpResponse.text("404 page not found\n", status=404)
