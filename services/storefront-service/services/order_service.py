"""Order management service."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session, selectinload
from opentelemetry import trace

from exceptions import InsufficientStockError, OrderNotFoundError, ProductNotFoundError
from models import Order, OrderItem, OrderStatus, Product
from monitoring import (
    orders_placed_counter,
    order_amount_histogram,
    stock_rejections_counter
)
from schemas import OrderProductRequest

logger = logging.getLogger(__name__)


class OrderService:
    """Service for placing and reading orders."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def place_order(
        self,
        db: Session,
        customer_id: str,
        lines: List[OrderProductRequest]
    ) -> Dict[str, Any]:
        """
        Place an order, decrementing stock for every line.

        Lines are validated and applied in the order given. The stock
        decrements and the order insert share one transaction on ``db``:
        either all of them are committed or none are.

        Args:
            db: Database session
            customer_id: Customer identifier (UUID string)
            lines: Requested products and quantities

        Returns:
            The created order with its line items

        Raises:
            ProductNotFoundError: If a requested product does not exist
            InsufficientStockError: If a line asks for more than is available
        """
        span = trace.get_current_span()
        span.set_attribute("customer.id", customer_id)
        span.set_attribute("order.line_count", len(lines))

        try:
            with self.tracer.start_as_current_span("db.transaction.place_order") as db_span:
                db_span.set_attribute("db.operation", "TRANSACTION")
                db_span.set_attribute("customer.id", customer_id)

                order_total = Decimal("0")
                order_items = []

                for line in lines:
                    product = self._lock_product(db, line.id)
                    if product is None:
                        raise ProductNotFoundError(line.id)

                    if product.available_count < line.quantity:
                        raise InsufficientStockError(
                            product.id, product.name, product.available_count, line.quantity
                        )

                    order_total += product.price * line.quantity
                    order_items.append(OrderItem(
                        product=product,
                        quantity=line.quantity,
                        price=product.price
                    ))

                    self._decrement_stock(db, product, line.quantity)

                order = Order(
                    customer_id=customer_id,
                    order_total=order_total,
                    status=OrderStatus.PENDING,
                    items=order_items
                )
                db.add(order)
                db.commit()

                db_span.set_attribute("order.id", order.id)
                db_span.set_attribute("order.total_amount", float(order_total))

        except (ProductNotFoundError, InsufficientStockError) as e:
            db.rollback()
            if isinstance(e, InsufficientStockError):
                stock_rejections_counter.add(1, {"product_id": str(e.product_id)})
            orders_placed_counter.add(1, {"status": "rejected"})
            logger.warning("Order rejected", extra={
                "customer_id": customer_id,
                "reason": type(e).__name__,
                "error": e.message
            })
            raise
        except Exception as e:
            db.rollback()
            orders_placed_counter.add(1, {"status": "failed"})
            logger.error("Failed to place order", extra={
                "customer_id": customer_id,
                "line_count": len(lines),
                "error": str(e)
            })
            raise

        orders_placed_counter.add(1, {"status": "placed"})
        order_amount_histogram.record(float(order_total))

        logger.info("Order placed", extra={
            "order_id": order.id,
            "customer_id": customer_id,
            "amount": float(order_total),
            "item_count": len(order_items)
        })

        return self._format_order(order)

    def _lock_product(self, db: Session, product_id: int) -> Optional[Product]:
        """Read a product row under a row lock, bypassing any cached copy."""
        with self.tracer.start_as_current_span("db.query.lock_product") as db_span:
            db_span.set_attribute("db.operation", "SELECT FOR UPDATE")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.id", product_id)

            product = (
                db.query(Product)
                .filter(Product.id == product_id)
                .populate_existing()
                .with_for_update()
                .first()
            )

            db_span.set_attribute("db.rows_returned", 1 if product else 0)
            return product

    def _decrement_stock(self, db: Session, product: Product, quantity: int) -> None:
        """
        Take ``quantity`` units off a product's stock.

        The update only matches while enough stock remains, so stock never
        goes negative even if another transaction got there first.

        Raises:
            InsufficientStockError: If the stock dropped below ``quantity``
        """
        with self.tracer.start_as_current_span("db.query.decrement_stock") as update_span:
            update_span.set_attribute("db.operation", "UPDATE")
            update_span.set_attribute("db.table", "products")
            update_span.set_attribute("product.id", product.id)
            update_span.set_attribute("product.stock.before", product.available_count)

            updated = (
                db.query(Product)
                .filter(Product.id == product.id, Product.available_count >= quantity)
                .update(
                    {
                        Product.available_count: Product.available_count - quantity,
                        Product.updated_at: datetime.utcnow()
                    },
                    synchronize_session=False
                )
            )

            update_span.set_attribute("db.rows_affected", updated)

            if updated != 1:
                db.refresh(product)
                raise InsufficientStockError(
                    product.id, product.name, product.available_count, quantity
                )

    def get_order(self, db: Session, order_id: str) -> Dict[str, Any]:
        """
        Get a single order with its line items.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        order = (
            self._orders_with_items(db)
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise OrderNotFoundError(order_id)

        return self._format_order(order)

    def list_orders(self, db: Session) -> List[Dict[str, Any]]:
        """Get all orders, newest first."""
        with self.tracer.start_as_current_span("db.query.list_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")

            orders = (
                self._orders_with_items(db)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(orders))

        return [self._format_order(order) for order in orders]

    @staticmethod
    def _orders_with_items(db: Session):
        return db.query(Order).options(
            selectinload(Order.items).selectinload(OrderItem.product)
        )

    @staticmethod
    def _format_order(order: Order) -> Dict[str, Any]:
        return {
            "id": order.id,
            "customer_id": order.customer_id,
            "order_created_date": order.created_at,
            "order_updated_date": order.updated_at,
            "status": order.status,
            "order_total": order.order_total,
            "products": [
                {
                    "id": item.product_id,
                    "quantity": item.quantity,
                    "name": item.product.name,
                    "price": item.price
                }
                for item in order.items
            ]
        }
