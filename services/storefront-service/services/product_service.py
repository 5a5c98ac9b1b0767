"""Product catalog service."""
import logging
import math
from typing import Any, Dict, List
from sqlalchemy.orm import Session
from opentelemetry import trace

from exceptions import ProductInUseError, ProductNotFoundError
from models import OrderItem, Product
from monitoring import product_changes_counter
from schemas import CheckQuantitiesRequest, ProductCreate, ProductPatch, ProductUpdate

logger = logging.getLogger(__name__)


class ProductService:
    """Service for managing the product catalog."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def create_product(self, db: Session, data: ProductCreate) -> Product:
        """
        Create a product.

        Args:
            db: Database session
            data: Validated product fields

        Returns:
            The persisted product
        """
        product = Product(**data.model_dump())
        db.add(product)
        db.commit()
        db.refresh(product)

        product_changes_counter.add(1, {"operation": "create"})
        logger.info("Created product", extra={
            "product_id": product.id,
            "product_name": product.name,
            "available_count": product.available_count
        })
        return product

    def list_products(self, db: Session, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Get one page of products, newest first.

        Args:
            db: Database session
            page: 1-based page number
            limit: Page size

        Returns:
            Page data and pagination details
        """
        with self.tracer.start_as_current_span("db.query.list_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            total = db.query(Product).count()
            products = (
                db.query(Product)
                .order_by(Product.created_at.desc(), Product.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(products))

        return {
            "data": products,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def get_product(self, db: Session, product_id: int) -> Product:
        """
        Get a product by id.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def update_product(self, db: Session, product_id: int, data: ProductUpdate) -> Product:
        """Replace every editable field of a product."""
        return self._apply_changes(db, product_id, data.model_dump(), "update")

    def patch_product(self, db: Session, product_id: int, data: ProductPatch) -> Product:
        """Update only the fields present in the request."""
        return self._apply_changes(db, product_id, data.model_dump(exclude_unset=True), "patch")

    def _apply_changes(
        self,
        db: Session,
        product_id: int,
        changes: Dict[str, Any],
        operation: str
    ) -> Product:
        product = self.get_product(db, product_id)

        for field_name, value in changes.items():
            setattr(product, field_name, value)

        db.commit()
        db.refresh(product)

        product_changes_counter.add(1, {"operation": operation})
        logger.info("Updated product", extra={
            "product_id": product_id,
            "operation": operation,
            "fields": sorted(changes)
        })
        return product

    def delete_product(self, db: Session, product_id: int) -> Dict[str, Any]:
        """
        Delete a product.

        Raises:
            ProductNotFoundError: If the product does not exist
            ProductInUseError: If order items still reference the product
        """
        product = self.get_product(db, product_id)

        referenced = db.query(OrderItem).filter(OrderItem.product_id == product_id).count()
        if referenced:
            raise ProductInUseError(product_id)

        db.delete(product)
        db.commit()

        product_changes_counter.add(1, {"operation": "delete"})
        logger.info("Deleted product", extra={"product_id": product_id})

        return {
            "success": True,
            "message": f"Product with ID {product_id} successfully deleted",
        }

    def check_quantities(self, db: Session, request: CheckQuantitiesRequest) -> List[Dict[str, int]]:
        """
        Look up stock for a set of product ids. Unknown ids are omitted.

        Args:
            db: Database session
            request: Ids to look up

        Returns:
            List of {id, available_count}
        """
        if not request.ids:
            return []

        with self.tracer.start_as_current_span("db.query.check_quantities") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.requested_ids", len(request.ids))

            rows = (
                db.query(Product.id, Product.available_count)
                .filter(Product.id.in_(request.ids))
                .order_by(Product.id)
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(rows))

        return [{"id": row.id, "available_count": row.available_count} for row in rows]
