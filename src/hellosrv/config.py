"""Server configuration.

Values are fixed at process start; there is no file or environment layer.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """
    Immutable server settings.

    Attributes:
        version: Version string reported by the greeting endpoint
        host: Interface to bind; "0.0.0.0" listens on all IPv4 interfaces
        port: TCP port; 0 picks a free one
        shutdown_timeout: Grace period in seconds for draining connections
        max_header_bytes: Largest accepted request head
        max_body_bytes: Largest accepted request body
    """
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_timeout: float = 5.0
    max_header_bytes: int = 64 * 1024
    max_body_bytes: int = 1 * 1024 * 1024

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port {self.port} out of range")
        if self.shutdown_timeout <= 0:
            raise ValueError("shutdown_timeout must be positive")


DEFAULT_CONFIG = ServerConfig()
