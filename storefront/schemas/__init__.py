"""
Schemas package
"""
from storefront.schemas.base import ApiResponse, Pagination, PaginationParams
from storefront.schemas.order import (
    OrderCreate,
    OrderItemCreate,
    OrderListResponse,
    OrderQuote,
    OrderQuoteRequest,
    OrderResponse,
    OrderStatusUpdate,
    ShippingAddress
)
from storefront.schemas.payment import (
    AdminPaymentResponse,
    CardDetailsInput,
    CardValidationData,
    PaymentListResponse,
    PaymentResponse,
    PaymentSummary,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    RefundRequest,
    RefundResponse
)

__all__ = [
    "ApiResponse",
    "Pagination",
    "PaginationParams",
    "OrderCreate",
    "OrderItemCreate",
    "OrderListResponse",
    "OrderQuote",
    "OrderQuoteRequest",
    "OrderResponse",
    "OrderStatusUpdate",
    "ShippingAddress",
    "AdminPaymentResponse",
    "CardDetailsInput",
    "CardValidationData",
    "PaymentListResponse",
    "PaymentResponse",
    "PaymentSummary",
    "ProcessPaymentRequest",
    "ProcessPaymentResponse",
    "RefundRequest",
    "RefundResponse"
]
