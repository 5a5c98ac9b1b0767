"""Orders API router."""
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from dependencies import get_order_service
from exceptions import InsufficientStockError, OrderNotFoundError, ProductNotFoundError
from schemas import CreateOrderRequest, OrderResponse
from services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    request: CreateOrderRequest,
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """
    Place a new order.

    Stock for every product is decreased atomically with the order insert;
    on any failure nothing is persisted.
    """
    try:
        return order_service.place_order(
            db=db,
            customer_id=str(request.customer_id),
            lines=request.products
        )
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InsufficientStockError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.get("", response_model=List[OrderResponse])
def list_orders(
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Get all orders, most recent first."""
    return order_service.list_orders(db)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: UUID = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Get a single order."""
    try:
        return order_service.get_order(db, str(order_id))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
