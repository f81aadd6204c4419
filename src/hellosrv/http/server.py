"""Tiny HTTP/1.1 server built on AnyIO socket streams.

Features:
- HTTP/1.1 request line + headers parsing
- Optional Content-Length body (no chunked encoding)
- One request per connection (Connection: close)
- Graceful close: stop accepting, drop idle connections, let in-flight
  requests finish inside the caller's deadline
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

import anyio
from anyio.abc import SocketAttribute, SocketStream, TaskStatus

from ..errors import BindError
from .netaddr import join_host_port

if TYPE_CHECKING:
    from .router import Router


logger = logging.getLogger(__name__)

HeaderMap = dict[str, str]
Handler = Callable[["HttpRequest"], Awaitable["HttpResponse"]]


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    path: str
    version: str
    headers: HeaderMap
    body: bytes = b""
    query: str = ""
    remote_addr: str = ""


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int = 200
    headers: Mapping[str, str] | None = None
    body: bytes = b""

    @staticmethod
    def text(
        text: str,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
        encoding: str = "utf-8",
    ) -> "HttpResponse":
        body = text.encode(encoding)
        merged: dict[str, str] = {"content-type": f"text/plain; charset={encoding}"}
        if headers:
            merged.update({k.lower(): v for k, v in headers.items()})
        return HttpResponse(status=status, headers=merged, body=body)

    @staticmethod
    def json(
        obj: Any,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> "HttpResponse":
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        merged: dict[str, str] = {"content-type": "application/json; charset=utf-8"}
        if headers:
            merged.update({k.lower(): v for k, v in headers.items()})
        return HttpResponse(status=status, headers=merged, body=body)


_STATUS_TEXT: dict[int, str] = {
    200: "OK",
    204: "No Content",
    301: "Moved Permanently",
    308: "Permanent Redirect",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
}


class RequestTooLarge(ValueError):
    """The request head exceeded the configured limit."""


def _status_line(status: int) -> str:
    text = _STATUS_TEXT.get(status, "OK")
    return f"HTTP/1.1 {status} {text}\r\n"


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {k.lower(): v for k, v in headers.items()}


async def _read_until(stream: SocketStream, marker: bytes, max_bytes: int) -> tuple[bytes, bytes]:
    """Read up to and including ``marker``; return it and whatever followed."""
    buf = bytearray()
    while True:
        idx = buf.find(marker)
        if idx > max_bytes or (idx == -1 and len(buf) > max_bytes):
            raise RequestTooLarge("request header too large")
        if idx != -1:
            end = idx + len(marker)
            return bytes(buf[:end]), bytes(buf[end:])
        try:
            chunk = await stream.receive(4096)
        except (anyio.EndOfStream, anyio.BrokenResourceError):
            return b"", b""
        if not chunk:
            return b"", b""
        buf.extend(chunk)


def _parse_headers(block: bytes) -> tuple[str, str, str, HeaderMap]:
    # block contains request line + headers ending with \r\n\r\n
    head = block.decode("iso-8859-1")

    lines = head.split("\r\n")
    if not lines or not lines[0]:
        raise ValueError("missing request line")

    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise ValueError("invalid request line")
    method, target, version = parts
    if not version.startswith("HTTP/"):
        raise ValueError(f"invalid protocol version {version!r}")

    headers: HeaderMap = {}
    for line in lines[1:]:
        if line == "":
            break
        if ":" not in line:
            raise ValueError(f"malformed header line {line!r}")
        k, v = line.split(":", 1)
        # Repeated headers: the first value wins.
        headers.setdefault(k.strip().lower(), v.strip())
    return method, target, version, headers


def _split_target(target: str) -> tuple[str, str]:
    path, _, query = target.partition("?")
    return path, query


async def _read_exact(stream: SocketStream, n: int, already: bytes = b"") -> bytes:
    buf = bytearray(already[:n])
    while len(buf) < n:
        try:
            chunk = await stream.receive(n - len(buf))
        except anyio.EndOfStream:
            break
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


async def _write_response(stream: SocketStream, response: HttpResponse) -> None:
    headers = _normalize_headers(response.headers)
    body = response.body or b""

    headers["content-length"] = str(len(body))
    headers.setdefault("connection", "close")

    start = _status_line(response.status).encode("ascii")
    head = b"".join(f"{k}: {v}\r\n".encode("latin-1") for k, v in headers.items())

    await stream.send(start + head + b"\r\n" + body)


async def _send_error(stream: SocketStream, response: HttpResponse, remote_addr: str) -> None:
    # The peer may already be gone; an undeliverable error reply is dropped.
    try:
        await _write_response(stream, response)
    except (anyio.BrokenResourceError, anyio.ClosedResourceError):
        logger.debug(
            "connection from %s closed before the %d response was sent",
            remote_addr,
            response.status,
        )


def _format_remote(stream: SocketStream) -> str:
    try:
        address = stream.extra(SocketAttribute.remote_address)
    except anyio.TypedAttributeLookupError:
        return ""
    if isinstance(address, tuple):
        return join_host_port(str(address[0]), str(address[1]))
    # UNIX sockets report a path
    return str(address)


class HttpServer:
    """HTTP server over an AnyIO TCP listener.

    - ``listen()`` binds the socket (raising ``BindError``)
    - ``serve()`` runs the accept loop; each connection gets its own task in
      a connection TaskGroup owned by ``serve()``
    - ``close()`` stops accepting and drops idle connections; ``serve()``
      returns once every in-flight connection has finished

    The drain deadline belongs to the caller: wrap ``serve()`` in a cancel
    scope and set its deadline after calling ``close()``.
    """

    def __init__(
        self,
        router: "Router",
        *,
        host: str = "127.0.0.1",
        port: int = 0,
        max_header_bytes: int = 64 * 1024,
        max_body_bytes: int = 1 * 1024 * 1024,
    ):
        self._router = router
        self._host = host
        self._port = port
        self._max_header_bytes = max_header_bytes
        self._max_body_bytes = max_body_bytes
        # anyio.create_tcp_listener() returns a MultiListener; keep it loosely typed.
        self._listener: Any = None
        self._accept_scope: anyio.CancelScope | None = None
        self._idle: set[anyio.CancelScope] = set()
        self._closing = False
        self._active = 0

    @property
    def port(self) -> int:
        if self._listener is None:
            raise RuntimeError("HttpServer is not listening")
        return self._port

    @property
    def active_connections(self) -> int:
        return self._active

    async def listen(self) -> int:
        """Bind the listening socket and return the bound port."""
        try:
            self._listener = await anyio.create_tcp_listener(
                local_host=self._host, local_port=self._port
            )
        except OSError as e:
            raise BindError(f"listen tcp {join_host_port(self._host, str(self._port))}: {e}") from e
        self._port = self._listener.extra(SocketAttribute.local_port)
        return self._port

    async def serve(self, *, task_status: TaskStatus[int] = anyio.TASK_STATUS_IGNORED) -> None:
        """Accept connections until ``close()``, then wait for in-flight ones."""
        if self._listener is None:
            await self.listen()

        async with anyio.create_task_group() as connections:
            try:
                with anyio.CancelScope() as accept_scope:
                    self._accept_scope = accept_scope
                    if self._closing:
                        accept_scope.cancel()
                    task_status.started(self._port)
                    await self._listener.serve(self._handle_client, task_group=connections)
            finally:
                with anyio.CancelScope(shield=True):
                    await self._listener.aclose()
            logger.debug("listener on port %d closed", self._port)

    def close(self) -> None:
        """Stop accepting new connections and drop the idle ones."""
        self._closing = True
        if self._accept_scope is not None:
            self._accept_scope.cancel()
        for scope in list(self._idle):
            scope.cancel()

    async def _read_head(self, stream: SocketStream) -> tuple[bytes, bytes]:
        # A connection is idle until its request head has arrived.
        with anyio.CancelScope() as idle_scope:
            if self._closing:
                idle_scope.cancel()
            self._idle.add(idle_scope)
            try:
                return await _read_until(stream, b"\r\n\r\n", self._max_header_bytes)
            finally:
                self._idle.discard(idle_scope)
        return b"", b""

    async def _handle_client(self, stream: SocketStream) -> None:
        self._active += 1
        try:
            await self._handle_connection(stream)
        finally:
            self._active -= 1

    async def _handle_connection(self, stream: SocketStream) -> None:
        async with stream:
            remote_addr = _format_remote(stream)
            try:
                header_block, leftover = await self._read_head(stream)
                if not header_block:
                    return

                method, target, version, headers = _parse_headers(header_block)
                try:
                    content_length = int(headers.get("content-length", "0") or "0")
                except ValueError:
                    raise ValueError("invalid content-length") from None
                if content_length < 0:
                    raise ValueError("invalid content-length")
                if content_length > self._max_body_bytes:
                    await _write_response(stream, HttpResponse.text("payload too large", status=413))
                    return

                body = b""
                if content_length:
                    body = await _read_exact(stream, content_length, leftover)

                path, query = _split_target(target)
                req = HttpRequest(
                    method=method,
                    path=path,
                    version=version,
                    headers=headers,
                    body=body,
                    query=query,
                    remote_addr=remote_addr,
                )
                resp = await self._router.dispatch(req)
                logger.debug("%s %s %s -> %d", remote_addr, method, target, resp.status)
                await _write_response(stream, resp)
            except RequestTooLarge as e:
                await _send_error(stream, HttpResponse.text(f"bad request: {e}", status=431), remote_addr)
            except ValueError as e:
                await _send_error(stream, HttpResponse.text(f"bad request: {e}", status=400), remote_addr)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug("connection from %s closed before the response was sent", remote_addr)
            except Exception as e:
                logger.exception("error serving %s", remote_addr)
                await _send_error(stream, HttpResponse.text(f"server error: {e!r}", status=500), remote_addr)
