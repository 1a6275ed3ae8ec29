"""
Repositories package
"""
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.payment_repository import PaymentRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.user_repository import UserRepository

__all__ = ["OrderRepository", "PaymentRepository", "ProductRepository", "UserRepository"]
