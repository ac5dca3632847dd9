"""
Custom exceptions for the order & billing engine.
"""


class OrderError(Exception):
    """Base exception for order lifecycle errors."""
    pass


class NotFound(OrderError):
    """Raised when an id does not resolve under the given restaurant."""

    def __init__(self, entity, identifier, message=None):
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} {identifier} not found"
        super().__init__(message)


class InvalidTransition(OrderError):
    """
    Raised when an operation is attempted against a state that forbids it.

    ``current`` and ``required`` describe the offending state so callers can
    tell the user what has to happen first.
    """

    def __init__(self, message, current=None, required=None):
        self.current = current
        self.required = required
        super().__init__(message)


class OrderClosed(InvalidTransition):
    """Raised when mutating an order whose bill has been closed."""

    def __init__(self, order, message=None):
        self.order = order
        if message is None:
            message = (
                f"Order {order.order_number} is closed. "
                "New orders for this table will create a fresh order."
            )
        super().__init__(message, current="closed", required="open")


class AlreadyClosed(InvalidTransition):
    def __init__(self, order, message=None):
        self.order = order
        if message is None:
            message = f"Order {order.order_number} is already closed"
        super().__init__(message, current="closed", required="open")


class NotServed(InvalidTransition):
    def __init__(self, order, message=None):
        self.order = order
        if message is None:
            message = f"Order {order.order_number} must be SERVED to close (currently {order.status})"
        super().__init__(message, current=order.status, required="SERVED")


class NotPaid(InvalidTransition):
    def __init__(self, order, message=None):
        self.order = order
        if message is None:
            message = (
                f"Order {order.order_number} must be fully PAID to close "
                f"(currently {order.payment_status})"
            )
        super().__init__(message, current=order.payment_status, required="PAID")


class ValidationFailure(OrderError):
    """Raised for malformed input (bad quantity, short cancel reason, ...)."""

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


class LedgerSyncFailure(OrderError):
    """
    Raised (or reported as a warning) when the bill for an order could not be
    created or updated. The order-side change stays committed.
    """

    def __init__(self, order, message=None):
        self.order = order
        if message is None:
            message = f"Could not synchronize the bill for order {order.order_number}"
        super().__init__(message)
