"""Domain errors raised by the storefront services.

Routers translate these into HTTP responses; services never build
HTTP errors themselves.
"""


class StorefrontError(Exception):
    """Base class for storefront domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProductNotFoundError(StorefrontError):
    """Raised when a product id does not exist."""

    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class OrderNotFoundError(StorefrontError):
    """Raised when an order id does not exist."""

    def __init__(self, order_id: str):
        super().__init__(f"Order with ID {order_id} not found")
        self.order_id = order_id


class InsufficientStockError(StorefrontError):
    """Raised when a line asks for more units than the product has available."""

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f'Insufficient stock for product "{product_name}". '
            f"Available: {available}, Requested: {requested}"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ProductInUseError(StorefrontError):
    """Raised when deleting a product that existing orders still reference."""

    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} is referenced by existing orders")
        self.product_id = product_id
