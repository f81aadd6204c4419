"""
Custom routes example

Runs the hello server with one extra endpoint under the same graceful
shutdown lifecycle.

Run:
  python examples/custom_routes.py

Then try:
  curl -i http://127.0.0.1:8081/
  curl -i http://127.0.0.1:8081/getip -H 'X-Forwarded-For: 198.51.100.7'
  curl -i -X POST http://127.0.0.1:8081/echo -d 'hello there'

Press Ctrl-C (or send SIGTERM) to drain and stop.
"""

from __future__ import annotations

import anyio

from hellosrv import HttpRequest, HttpResponse, Lifecycle, ServerConfig, build_router
from hellosrv.log import configure_logging


async def handle_echo(req: HttpRequest) -> HttpResponse:
    # Echo the raw body bytes back.
    return HttpResponse(
        status=200,
        headers={"content-type": req.headers.get("content-type", "application/octet-stream")},
        body=req.body,
    )


async def main() -> None:
    config = ServerConfig(host="127.0.0.1", port=8081)
    router = build_router(config)
    router.add("POST", "/echo", handle_echo)

    await Lifecycle(config, router).run()


if __name__ == "__main__":
    configure_logging()
    anyio.run(main)
