"""Typed business errors raised by the commerce services.

Every error carries a distinguishable kind (the class name) so the API layer
can render a precise message. HTTP status mapping lives in ``app.main``.
"""


class CommerceError(Exception):
    """Base exception for all commerce-core rejections."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFoundError(CommerceError):
    """Raised when an order, appointment, coupon, zone or catalog entry is missing."""

    def __init__(self, entity: str, identifier: object | None = None):
        self.entity = entity
        self.identifier = identifier
        msg = f"{entity} not found"
        if identifier is not None:
            msg = f"{entity} not found: {identifier}"
        super().__init__(msg)


class ValidationError(CommerceError):
    """Raised for malformed input that passed schema validation."""

    pass


class InvalidTransitionError(CommerceError):
    """Raised when a status change would leave a terminal state."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current} -> {target}")


class ConcurrentUpdateError(CommerceError):
    """Raised when a record keeps changing underneath a compare-and-swap."""

    pass


class InsufficientStockError(CommerceError):
    """Raised when a product cannot cover the requested quantity."""

    def __init__(self, product_id: object, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id} "
            f"(have {available}, requested {requested})"
        )


class SlotConflictError(CommerceError):
    """Raised when a requested appointment overlaps an existing booking."""

    pass


class InactiveError(CommerceError):
    """Raised when a coupon is disabled, outside its window or used up."""

    pass


class UsageLimitExceededError(InactiveError):
    """Raised when a coupon has no usage left (globally or for this user)."""

    pass


class MinimumNotMetError(CommerceError):
    """Raised when the order total is below a coupon's minimum."""

    def __init__(self, minimum: float):
        self.minimum = minimum
        super().__init__(f"Minimum order amount is {minimum:,.0f}")
