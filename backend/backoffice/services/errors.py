"""
Order-inventory engine error taxonomy.

All of these are expected, per-request conditions. Routes translate them
with `http_status`; nothing here is fatal to the process.
"""


class OrderError(Exception):
    """Base class for engine errors. Carries a message and a details dict."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self)}
        if self.details:
            payload["details"] = self.details
        return payload


class OrderNotFound(OrderError):
    http_status = 404

    def __init__(self, order_id):
        super().__init__("Order not found", {"order_id": order_id})


class ProductNotFound(OrderError):
    http_status = 404

    def __init__(self, product_id):
        super().__init__(f"Product not found: {product_id}", {"product_id": product_id})


class EmptyOrder(OrderError):
    def __init__(self):
        super().__init__("Order must have at least one item")


class InsufficientStock(OrderError):
    """Names the product whose stock would go negative."""
    http_status = 409

    def __init__(self, product_id, product_name: str | None, available: int | None, requested: int):
        label = product_name or f"#{product_id}"
        if available is None:
            message = f"Insufficient stock for product {label}"
        else:
            message = f"Insufficient stock for product {label}. Available: {available}"
        super().__init__(
            message,
            {
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name


class AlreadyCancelled(OrderError):
    http_status = 409

    def __init__(self, order_id):
        super().__init__("Order is already cancelled", {"order_id": order_id})


class InvalidStatus(OrderError):
    def __init__(self, status, reason: str | None = None):
        super().__init__(reason or f"Invalid status: {status}", {"status": status})


class InvalidOrderData(OrderError):
    """Malformed line items, prices, discount, payment method or document type."""


class OrderNotDeletable(OrderError):
    http_status = 409

    def __init__(self, order_id, status: str):
        super().__init__(
            "Only cancelled orders can be deleted permanently",
            {"order_id": order_id, "status": status},
        )
