"""Error taxonomy for the storefront domain.

Every failure a caller can react to carries a stable ``kind`` plus a
human-readable message and optional structured detail. Raising any of these
inside a command handler discards the whole Unit of Work.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    kind = "Internal"

    def __init__(self, message: str, **detail):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "detail": self.detail}


class Unauthorized(StorefrontError):
    """Raised when no usable caller identity was supplied."""

    kind = "Unauthorized"


class Forbidden(StorefrontError):
    """Raised when the caller has the wrong role or does not own the resource."""

    kind = "Forbidden"


class NotFound(StorefrontError):
    kind = "NotFound"


class ProductNotFound(NotFound):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}", product_id=str(product_id))


class OrderNotFound(NotFound):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}", order_id=str(order_id))


class CartItemNotFound(NotFound):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Cart item not found: {item_id}", item_id=str(item_id))


class InvalidInput(StorefrontError):
    """Raised when a request is malformed or a value is out of range."""

    kind = "InvalidInput"


class DeliveryCodeMismatch(InvalidInput):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Invalid delivery code", order_id=str(order_id), reason="mismatch")


class EmptyCart(StorefrontError):
    kind = "EmptyCart"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Cart is empty", user_id=str(user_id))


class InsufficientStock(StorefrontError):
    """Raised when a debit would drive a product's stock counter below zero.

    ``available`` is what the caller can still take, so a client can lower
    its quantity without another round trip.
    """

    kind = "InsufficientStock"

    def __init__(self, product_id: str, available: int, requested: int, name: str | None = None):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        label = name or product_id
        super().__init__(
            f"Not enough stock for {label}. Available: {available}",
            product_id=str(product_id),
            available=available,
            requested=requested,
        )


class InvalidState(StorefrontError):
    """Raised when an operation is not allowed in the order's current status."""

    kind = "InvalidState"


class InvalidTransition(StorefrontError):
    kind = "InvalidTransition"

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        msg = f"Cannot transition from {current} to {target}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg, current=current, target=target)


class AlreadyVerified(StorefrontError):
    kind = "AlreadyVerified"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Delivery code already verified for this order", order_id=str(order_id))


class ForeignItem(StorefrontError):
    """Raised when an edit references an item that belongs to another order."""

    kind = "ForeignItem"

    def __init__(self, order_id: str, item_id: str):
        self.order_id = order_id
        self.item_id = item_id
        super().__init__(
            f"Item with ID {item_id} does not belong to this order",
            order_id=str(order_id),
            item_id=str(item_id),
        )


class ConcurrencyConflict(StorefrontError):
    """Raised when a command keeps losing optimistic-concurrency races."""

    kind = "ConcurrencyConflict"
