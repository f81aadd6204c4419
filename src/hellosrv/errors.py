"""Process-level server failures."""


class ServerError(Exception):
    """Base class for failures that stop the server process."""
    pass


class BindError(ServerError):
    """The listening socket could not be bound."""
    pass


class ShutdownTimeout(ServerError):
    """In-flight connections did not drain before the grace period ended."""

    def __init__(self, grace_period: float):
        super().__init__(f"context deadline exceeded after {grace_period:g}s")
        self.grace_period = grace_period
