"""
Pydantic schemas for order requests and responses
"""
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, EmailStr, Field

from storefront.models.enums import OrderStatus, PaymentMethod
from storefront.schemas.base import CamelModel, Pagination


class ShippingAddress(CamelModel):
    """Delivery address, every field required"""
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class OrderItemCreate(CamelModel):
    """Requested line: prices are always taken from the catalog"""
    product: int = Field(..., gt=0, description="Product ID")
    quantity: int = Field(..., ge=1, description="Quantity to order")


class OrderQuoteRequest(CamelModel):
    """Schema for previewing cart prices"""
    order_items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderCreate(OrderQuoteRequest):
    """Schema for creating a new order"""
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdate(CamelModel):
    """Schema for updating order status"""
    status: OrderStatus
    tracking_number: Optional[str] = Field(None, max_length=100)


class OrderQuote(CamelModel):
    """Price preview computed with the same rule as stored orders"""
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    tax_rate: float
    free_shipping_threshold: float
    flat_shipping_fee: float


class OrderItemResponse(CamelModel):
    product_id: int
    name: str
    price: float
    quantity: int
    image: Optional[str] = None


class PaymentResultSnapshot(CamelModel):
    """Snapshot of the charge that paid the order"""
    id: str
    status: str
    update_time: str
    email_address: Optional[EmailStr] = None


class OrderResponse(CamelModel):
    """Schema for order response"""
    id: int
    user_id: int
    order_items: List[OrderItemResponse] = Field(
        validation_alias=AliasChoices("items", "orderItems", "order_items"),
        serialization_alias="orderItems"
    )
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    status: OrderStatus
    tracking_number: Optional[str] = None
    payment_result: Optional[PaymentResultSnapshot] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(CamelModel):
    """Schema for list of orders response"""
    success: bool = True
    count: int
    data: List[OrderResponse]
    pagination: Optional[Pagination] = None
