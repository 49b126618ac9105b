"""Error taxonomy for the transaction and cash-drawer core.

Every error here is an expected outcome of an operator action: it is raised
before any write (or after a rollback) and carries enough detail for the
front end to tell the cashier what to fix.
"""


class PosError(Exception):
    """Base exception for all domain errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class InsufficientStock(PosError):
    """A cart line asks for more units than are available."""
    status_code = 409

    def __init__(self, product_id, product_name: str | None, requested: int, available: int):
        name = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {name}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidAmount(PosError):
    """Non-positive movement, negative tender or short cash payment."""


class EmptyCart(PosError):
    """Checkout attempted with no lines."""


class InvalidPaymentMethod(PosError):
    pass


class DiscountNotAllowed(PosError):
    """Discount disabled or above the configured maximum percent."""


class NotFound(PosError):
    status_code = 404


class AlreadyOpen(PosError):
    status_code = 409


class NotOpen(PosError):
    status_code = 409


class AlreadyClosed(PosError):
    status_code = 409


class CommitFailure(PosError):
    """The store aborted the transaction. Retry from a fresh stock check."""
    status_code = 503


class InvalidQuantity(PosError):
    """Line quantity is not a positive integer."""


class InvalidMovementType(PosError):
    pass
