"""Error taxonomy for the order-commit core.

Every error carries the HTTP status it maps to and a stable message. Extra
keyword arguments become ``details`` and are rendered next to the message.
"""

from typing import Any


class PosError(Exception):
    status_code = 500
    message = "Server error occurred"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, **self.details}


class ValidationError(PosError):
    status_code = 400
    message = "Validation failed"


class InvalidItemError(ValidationError):
    message = "Invalid item data. Each item must have product ID and valid quantity."


class InvalidIdError(PosError):
    status_code = 400
    message = "Invalid ID format provided"


class AuthenticationError(PosError):
    status_code = 401
    message = "User not authenticated"


class NotFoundError(PosError):
    status_code = 404
    message = "Resource not found"


class ProductNotFoundError(NotFoundError):
    # Raised for ids referenced from a cart, so it is a bad request.
    status_code = 400

    def __init__(self, product_id: str):
        super().__init__(f"Product with ID {product_id} not found", productId=product_id)


class CustomerNotFoundError(NotFoundError):
    status_code = 400

    def __init__(self, customer_id: str):
        super().__init__("Selected customer not found", customerId=customer_id)


class OrderNotFoundError(NotFoundError):
    message = "Order not found"


class InsufficientStockError(PosError):
    status_code = 400

    def __init__(self, product_id: str, requested: int, available: int | None, name: str | None = None):
        label = name or product_id
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            productId=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class DuplicateOrderNumberError(PosError):
    status_code = 400
    message = "Order number already exists. Please try again."


class InvalidTransitionError(PosError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change order status from {current} to {requested}",
            currentStatus=current,
            requestedStatus=requested,
        )


class ServerError(PosError):
    status_code = 500
    message = "Server error occurred"
