"""
Pydantic schemas for payment requests and responses
"""
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, ConfigDict, Field

from storefront.models.enums import CardBrand, PaymentMethod, PaymentStatus
from storefront.schemas.base import CamelModel, Pagination
from storefront.schemas.order import OrderItemResponse, OrderResponse


class CardDetailsInput(CamelModel):
    """
    Raw card fields as typed by the customer.
    
    Only presence is enforced here; format, checksum, expiry and CVV are
    judged by the card validator so the client gets one reason at a time.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)
    
    card_number: str = Field(..., min_length=1)
    expiry_month: str = Field(..., min_length=1, max_length=2)
    expiry_year: str = Field(..., min_length=1, max_length=4)
    cvv: str = Field(..., min_length=1)
    cardholder_name: Optional[str] = None


class ProcessPaymentRequest(CardDetailsInput):
    """Schema for charging an order"""
    order_id: int = Field(..., gt=0)
    cardholder_name: str = Field(..., min_length=1, max_length=255)


class RefundRequest(CamelModel):
    """Schema for refunding a completed payment; amount defaults to the full charge"""
    payment_id: int = Field(..., gt=0)
    refund_amount: Optional[float] = Field(None, ge=0)
    reason: Optional[str] = Field(None, max_length=500)


class CardValidationData(CamelModel):
    card_brand: CardBrand
    last4: str


class CardDetailsResponse(CamelModel):
    last4: str
    brand: CardBrand
    expiry_month: str
    expiry_year: str


class PaymentSummary(CamelModel):
    """Customer-facing view of a payment"""
    transaction_id: str
    amount: float
    currency: str
    status: PaymentStatus
    card_info: str
    processed_at: Optional[datetime] = None


class PaymentResponse(CamelModel):
    """Schema for payment response"""
    id: int
    order_id: int
    user_id: int
    amount: float
    currency: str
    payment_method: PaymentMethod
    card_details: CardDetailsResponse
    status: PaymentStatus
    transaction_id: str
    failure_reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    refund_amount: float
    created_at: datetime


class PaymentOrderSummary(CamelModel):
    id: int
    order_items: List[OrderItemResponse] = Field(
        validation_alias=AliasChoices("items", "orderItems", "order_items"),
        serialization_alias="orderItems"
    )
    total_price: float


class PaymentUserSummary(CamelModel):
    id: int
    name: str
    email: str


class AdminPaymentResponse(PaymentResponse):
    """Payment joined with its order lines and payer"""
    order: PaymentOrderSummary
    user: PaymentUserSummary


class PaymentListResponse(CamelModel):
    """Schema for the admin payment listing"""
    success: bool = True
    data: List[AdminPaymentResponse]
    pagination: Pagination


class ProcessPaymentResponse(CamelModel):
    """Definitive verdict of one checkout attempt"""
    success: bool
    message: str
    transaction_id: str
    payment_id: int
    processing_time_ms: float
    order: OrderResponse


class RefundResponse(CamelModel):
    success: bool
    message: str
    refund_amount: Optional[float] = None
    transaction_id: str
    data: Optional[PaymentResponse] = None
