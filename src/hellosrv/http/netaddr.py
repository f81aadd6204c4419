"""host:port helpers.

IPv6 hosts are bracketed (``[::1]:8080``); a bare host with a colon in it
is rejected as ambiguous.
"""

from __future__ import annotations


class AddressError(ValueError):
    """A network address could not be split into host and port."""

    def __init__(self, reason: str, address: str):
        super().__init__(f"address {address}: {reason}")
        self.reason = reason
        self.address = address


def split_host_port(address: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port`` into ``(host, port)``.

    The port is returned as a string and is not validated.
    """
    i = address.rfind(":")
    if i < 0:
        raise AddressError("missing port in address", address)

    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise AddressError("missing ']' in address", address)
        if end + 1 == len(address):
            raise AddressError("missing port in address", address)
        if end + 1 != i:
            # Either ']' isn't followed by a colon, or it is followed by a
            # colon that is not the last one.
            if address[end + 1] == ":":
                raise AddressError("too many colons in address", address)
            raise AddressError("missing port in address", address)
        host = address[1:end]
        j, k = 1, end + 1
    else:
        host = address[:i]
        if ":" in host:
            raise AddressError("too many colons in address", address)
        j = k = 0

    if "[" in address[j:]:
        raise AddressError("unexpected '[' in address", address)
    if "]" in address[k:]:
        raise AddressError("unexpected ']' in address", address)

    return host, address[i + 1:]


def join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
