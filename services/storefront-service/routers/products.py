"""Products API router."""
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session
from typing import List
from opentelemetry import trace

from database import get_db
from dependencies import get_product_service
from exceptions import ProductInUseError, ProductNotFoundError
from monitoring import product_views_counter
from schemas import (
    MAX_INT,
    CheckQuantitiesRequest,
    DeleteResponse,
    PaginatedProductsResponse,
    ProductCreate,
    ProductPatch,
    ProductQuantityResponse,
    ProductResponse,
    ProductUpdate,
)
from services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    request: ProductCreate,
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Create a new product."""
    return product_service.create_product(db, request)


@router.get("", response_model=PaginatedProductsResponse)
def list_products(
    page: int = Query(1, ge=1, le=MAX_INT, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page (max 100)"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Get a page of products, newest first."""
    result = product_service.list_products(db, page=page, limit=limit)

    span = trace.get_current_span()
    span.set_attribute("product.count", len(result["data"]))
    span.set_attribute("pagination.page", page)

    product_views_counter.add(1, {"view": "list"})

    return result


@router.post("/check-quantities", response_model=List[ProductQuantityResponse])
def check_quantities(
    request: CheckQuantitiesRequest,
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """
    Check available quantities for a list of product ids.

    Ids that do not exist are left out of the response.
    """
    return product_service.check_quantities(db, request)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int = Path(..., gt=0, le=MAX_INT, description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Get a single product."""
    try:
        product = product_service.get_product(db, product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    trace.get_current_span().set_attribute("product.id", product_id)
    product_views_counter.add(1, {"view": "detail"})

    return product


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    request: ProductUpdate,
    product_id: int = Path(..., gt=0, le=MAX_INT, description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Replace all editable fields of a product."""
    try:
        return product_service.update_product(db, product_id, request)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.patch("/{product_id}", response_model=ProductResponse)
def patch_product(
    request: ProductPatch,
    product_id: int = Path(..., gt=0, le=MAX_INT, description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Update only the provided fields of a product."""
    try:
        return product_service.patch_product(db, product_id, request)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/{product_id}", response_model=DeleteResponse)
def delete_product(
    product_id: int = Path(..., gt=0, le=MAX_INT, description="Product ID"),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Delete a product."""
    try:
        return product_service.delete_product(db, product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ProductInUseError as e:
        raise HTTPException(status_code=409, detail=e.message)
