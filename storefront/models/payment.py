"""
SQLAlchemy Payment model
"""
import time
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from storefront.database import Base
from storefront.errors import InvalidStateError
from storefront.models.enums import (
    PAYMENT_TRANSITIONS, CardBrand, PaymentMethod, PaymentStatus, enum_values
)


def generate_transaction_id() -> str:
    """Opaque, globally unique transaction reference"""
    return f"TXN_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12].upper()}"


class Payment(Base):
    """
    One charge attempt against an order.
    
    Kept as its own row so every attempt survives even when the order's
    payment_result snapshot is overwritten. Only the last four digits and the
    brand of the card are stored.
    """
    
    __tablename__ = "payments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(
        Enum(PaymentMethod, native_enum=False, length=30, values_callable=enum_values),
        nullable=False,
        default=PaymentMethod.CREDIT_CARD
    )
    card_last4 = Column(String(4), nullable=False)
    card_brand = Column(
        Enum(CardBrand, native_enum=False, length=20, values_callable=enum_values),
        nullable=False
    )
    card_expiry_month = Column(String(2), nullable=False)
    card_expiry_year = Column(String(4), nullable=False)
    status = Column(
        Enum(PaymentStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )
    transaction_id = Column(String(64), nullable=False, unique=True, index=True, default=generate_transaction_id)
    failure_reason = Column(String(500), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_amount = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    order = relationship("Order", back_populates="payments")
    user = relationship("User", lazy="joined")
    
    __table_args__ = (
        CheckConstraint('amount >= 0', name='check_amount_non_negative'),
        CheckConstraint('refund_amount <= amount', name='check_refund_within_amount'),
    )
    
    @validates("transaction_id")
    def _validate_transaction_id(self, key, value):
        if self.transaction_id is not None and value != self.transaction_id:
            raise ValueError("transaction_id cannot be changed once assigned")
        return value
    
    @property
    def card_details(self) -> dict:
        return {
            "last4": self.card_last4,
            "brand": self.card_brand,
            "expiry_month": self.card_expiry_month,
            "expiry_year": self.card_expiry_year,
        }
    
    @property
    def card_info(self) -> str:
        return f"{CardBrand(self.card_brand).value.upper()} ****{self.card_last4}"
    
    def transition_to(self, new_status: PaymentStatus):
        current = PaymentStatus(self.status)
        new_status = PaymentStatus(new_status)
        if new_status not in PAYMENT_TRANSITIONS[current]:
            raise InvalidStateError("payment", current.value, new_status.value)
        self.status = new_status
    
    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, amount={self.amount}, status='{self.status}')>"
