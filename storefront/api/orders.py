"""
Order API endpoints
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_event_publisher, require_admin
from storefront.database import get_db
from storefront.models.enums import OrderStatus
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.schemas.base import ApiResponse, PaginationParams
from storefront.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderQuote,
    OrderQuoteRequest,
    OrderResponse,
    OrderStatusUpdate
)
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(
    db: Session = Depends(get_db),
    event_publisher: EventPublisher = Depends(get_event_publisher)
) -> OrderService:
    """Dependency to get OrderService instance"""
    return OrderService(db, event_publisher=event_publisher)


@router.post("", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED, summary="Create order")
def create_order(
    order_data: OrderCreate,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """
    Create a new order
    
    Process:
    1. Validate every product exists
    2. Reserve stock for every line (all or nothing)
    3. Compute items, tax, shipping and total prices
    4. Save order with status pending
    5. Publish OrderCreated event to RabbitMQ
    """
    order = service.create_order(user, order_data)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.post("/quote", response_model=ApiResponse[OrderQuote], summary="Preview cart prices")
def quote_order(
    quote_request: OrderQuoteRequest,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """
    Price a cart with the same tax and shipping rule used for orders.
    
    No stock is reserved.
    """
    return ApiResponse(data=service.quote(quote_request))


@router.get("/myorders", response_model=OrderListResponse, summary="Get my orders")
def get_my_orders(
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """Orders placed by the authenticated user, newest first"""
    orders = service.get_my_orders(user)
    return OrderListResponse(
        count=len(orders),
        data=[OrderResponse.model_validate(o) for o in orders]
    )


@router.get("", response_model=OrderListResponse, summary="Get all orders")
def get_orders(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Orders per page"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="Created at or after"),
    end_date: Optional[datetime] = Query(None, alias="endDate", description="Created at or before"),
    admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve all orders with filters and pagination (admin only)
    
    - **page**: Page number (default: 1)
    - **limit**: Orders per page (default: 10, max: 100)
    - **status**: Optional status filter
    - **startDate** / **endDate**: Optional creation date range
    """
    orders, pagination = service.get_all_orders(
        PaginationParams(page=page, limit=limit),
        status=order_status,
        start_date=start_date,
        end_date=end_date
    )
    return OrderListResponse(
        count=len(orders),
        data=[OrderResponse.model_validate(o) for o in orders],
        pagination=pagination
    )


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse], summary="Get order by ID")
def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve a specific order by ID
    
    Only the owner or an administrator may read it.
    """
    order = service.get_order(order_id, user)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse], summary="Update order status")
def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """
    Advance the order lifecycle (admin only)
    
    - **status**: pending, processing, shipped, delivered or cancelled
    - **trackingNumber**: Optional carrier tracking number
    """
    order = service.update_order_status(order_id, status_data)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.put("/{order_id}/deliver", response_model=ApiResponse[OrderResponse], summary="Mark order delivered")
def mark_order_delivered(
    order_id: int,
    admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """Mark an order as delivered (admin only)"""
    order = service.mark_delivered(order_id)
    return ApiResponse(data=OrderResponse.model_validate(order))
