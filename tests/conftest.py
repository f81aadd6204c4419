"""Shared fixtures: AnyIO backend and a raw-socket HTTP client."""

from __future__ import annotations

from dataclasses import dataclass

import anyio
import pytest

from hellosrv import HttpRequest, ServerConfig


@pytest.fixture
def anyio_backend():
    return "asyncio"


@dataclass
class RawResponse:
    status: int
    headers: dict[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


def parse_response(data: bytes) -> RawResponse:
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers: dict[str, str] = {}
    for line in lines[1:]:
        k, v = line.split(":", 1)
        headers[k.strip().lower()] = v.strip()
    return RawResponse(status=status, headers=headers, body=body)


async def read_all(stream) -> bytes:
    data = bytearray()
    while True:
        try:
            data.extend(await stream.receive())
        except (anyio.EndOfStream, anyio.BrokenResourceError):
            return bytes(data)


async def send_raw(port: int, payload: bytes) -> bytes:
    async with await anyio.connect_tcp("127.0.0.1", port) as stream:
        await stream.send(payload)
        return await read_all(stream)


async def _fetch(
    port: int,
    path: str = "/",
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: bytes = b"",
) -> RawResponse:
    lines = [f"{method} {path} HTTP/1.1", "Host: 127.0.0.1"]
    for k, v in (headers or {}).items():
        lines.append(f"{k}: {v}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    payload = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body
    return parse_response(await send_raw(port, payload))


@pytest.fixture
def fetch():
    """``await fetch(port, path, ...)`` -> RawResponse."""
    return _fetch


@pytest.fixture
def raw():
    """``await raw(port, payload)`` -> bytes read until the server closes."""
    return send_raw


@pytest.fixture
def make_request():
    def _make(
        path: str = "/",
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        remote_addr: str = "203.0.113.5:54321",
    ) -> HttpRequest:
        return HttpRequest(
            method=method,
            path=path,
            version="HTTP/1.1",
            headers={k.lower(): v for k, v in (headers or {}).items()},
            remote_addr=remote_addr,
        )

    return _make


@pytest.fixture
def server_config():
    return ServerConfig(host="127.0.0.1", port=0, shutdown_timeout=2.0)
