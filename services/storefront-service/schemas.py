"""Pydantic schemas for request/response validation.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

from models import OrderStatus

# Integer columns are 32-bit on PostgreSQL
MAX_INT = 2**31 - 1

ProductName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ProductDescription = Annotated[str, StringConstraints(strip_whitespace=True)]
Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]

StockCount = Annotated[int, Field(ge=0, le=MAX_INT)]
PositiveInt = Annotated[int, Field(gt=0, le=MAX_INT)]


class CamelModel(BaseModel):
    """Base schema that speaks camelCase JSON and reads ORM objects."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProductCreate(CamelModel):
    """Schema for creating a product."""
    name: ProductName
    description: ProductDescription
    price: Price
    available_count: StockCount


class ProductUpdate(ProductCreate):
    """Schema for replacing every editable product field."""


class ProductPatch(CamelModel):
    """Schema for partially updating a product."""
    name: Optional[ProductName] = None
    description: Optional[ProductDescription] = None
    price: Optional[Price] = None
    available_count: Optional[StockCount] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "ProductPatch":
        for field_name in self.model_fields_set:
            if getattr(self, field_name) is None:
                raise ValueError(f"{to_camel(field_name)} may not be null")
        return self


class ProductResponse(CamelModel):
    """Schema for product response."""
    id: int
    name: str
    description: str
    price: float
    available_count: int
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedProductsResponse(CamelModel):
    """Schema for a page of products."""
    data: List[ProductResponse]
    pagination: Pagination


class CheckQuantitiesRequest(CamelModel):
    """Schema for the batch stock lookup."""
    ids: List[PositiveInt]


class ProductQuantityResponse(CamelModel):
    id: int
    available_count: int


class DeleteResponse(CamelModel):
    success: bool
    message: str


class OrderProductRequest(CamelModel):
    """One requested line of an order."""
    id: PositiveInt
    quantity: PositiveInt


class CreateOrderRequest(CamelModel):
    """Schema for placing an order."""
    customer_id: UUID
    products: List[OrderProductRequest] = Field(..., min_length=1)


class OrderItemResponse(CamelModel):
    """Ordered product with the price captured at order time."""
    id: int
    quantity: int
    name: str
    price: float


class OrderResponse(CamelModel):
    """Schema for order response."""
    id: UUID
    customer_id: UUID
    order_created_date: datetime
    order_updated_date: datetime
    status: OrderStatus
    order_total: float
    products: List[OrderItemResponse]
