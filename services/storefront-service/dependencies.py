"""Dependency injection for services."""
from services.order_service import OrderService
from services.product_service import ProductService


def get_product_service() -> ProductService:
    """Get product service instance."""
    return ProductService()


def get_order_service() -> OrderService:
    """Get order service instance."""
    return OrderService()
