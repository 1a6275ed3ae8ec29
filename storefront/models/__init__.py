"""
Models package
"""
from storefront.models.enums import (
    CardBrand,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    UserRole
)
from storefront.models.user import User
from storefront.models.product import Product
from storefront.models.order import Order, OrderItem
from storefront.models.payment import Payment

__all__ = [
    "CardBrand",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "UserRole",
    "User",
    "Product",
    "Order",
    "OrderItem",
    "Payment"
]
