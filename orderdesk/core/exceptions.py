"""
Domain Exceptions

Every failure the order pipeline can report. Services raise these;
the API layer and the chat handler translate them into responses.
"""

from typing import Iterable, Optional


class OrderDeskError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(OrderDeskError):
    """Malformed or incomplete input, rejected before any side effect."""


class ResolutionError(OrderDeskError):
    """One or more shop or item references could not be resolved."""

    def __init__(self, tokens: Iterable[str], message: Optional[str] = None):
        self.tokens = list(tokens)
        super().__init__(message or f"Could not resolve: {', '.join(self.tokens)}")


class CounterUnavailable(OrderDeskError):
    """The order-number counter could not issue a value."""


class InvalidTransition(OrderDeskError):
    """A status change was illegal or computed against a stale status."""

    def __init__(self, current: str, requested: str, stale: bool = False):
        self.current = current
        self.requested = requested
        self.stale = stale
        if stale:
            message = f"Order status changed to '{current}' before '{requested}' could be applied"
        else:
            message = f"Cannot move order from '{current}' to '{requested}'"
        super().__init__(message)


class OrderNotFound(OrderDeskError):
    """No order matches the given identifier."""

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Order {identifier} not found")


class OrderPersistError(OrderDeskError):
    """The order could not be written to the store."""


class NotificationDeliveryFailure(OrderDeskError):
    """A publish or outbound message attempt failed. Always handled locally."""

    def __init__(self, sink: str, reason: str):
        self.sink = sink
        self.reason = reason
        super().__init__(f"{sink}: {reason}")


class StoreError(OrderDeskError):
    """The backing storage failed or is unreachable."""


class CounterStoreError(StoreError):
    """The counter step of a numbered insert failed; nothing was written."""
