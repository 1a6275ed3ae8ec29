"""
SQLAlchemy Order and OrderItem models
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text, event
)
from sqlalchemy.orm import Session, relationship
from sqlalchemy.sql import func

from storefront.database import Base
from storefront.errors import InvalidStateError
from storefront.models.enums import ORDER_TRANSITIONS, OrderStatus, PaymentMethod, enum_values
from storefront.services.pricing import compute_prices


class Order(Base):
    """Order database model"""
    
    __tablename__ = "orders"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shipping_address = Column(JSON, nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, native_enum=False, length=30, values_callable=enum_values),
        nullable=False
    )
    # Recomputed from the lines on every flush, see _recalculate_order_prices
    items_price = Column(Float, nullable=False, default=0.0)
    tax_price = Column(Float, nullable=False, default=0.0)
    shipping_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(OrderStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True
    )
    tracking_number = Column(String(100), nullable=True)
    payment_result = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    user = relationship("User", lazy="joined")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin"
    )
    payments = relationship("Payment", back_populates="order", order_by="Payment.id")
    
    def recalculate_prices(self):
        breakdown = compute_prices((item.price, item.quantity) for item in self.items)
        self.items_price = breakdown.items_price
        self.tax_price = breakdown.tax_price
        self.shipping_price = breakdown.shipping_price
        self.total_price = breakdown.total_price
    
    def can_transition_to(self, new_status: OrderStatus) -> bool:
        current = OrderStatus(self.status)
        return new_status == current or new_status in ORDER_TRANSITIONS[current]
    
    def transition_to(self, new_status: OrderStatus):
        new_status = OrderStatus(new_status)
        if not self.can_transition_to(new_status):
            raise InvalidStateError("order", OrderStatus(self.status).value, new_status.value)
        self.status = new_status
        if new_status == OrderStatus.DELIVERED and not self.is_delivered:
            self.is_delivered = True
            self.delivered_at = datetime.now(timezone.utc)
    
    def mark_paid(self, transaction_id: str, email_address: str):
        """Record a successful charge and move a pending order to processing"""
        now = datetime.now(timezone.utc)
        self.is_paid = True
        self.paid_at = now
        self.payment_result = {
            "id": transaction_id,
            "status": "completed",
            "update_time": now.isoformat(),
            "email_address": email_address,
        }
        if OrderStatus(self.status) == OrderStatus.PENDING:
            self.status = OrderStatus.PROCESSING
    
    def __repr__(self):
        return f"<Order(id={self.id}, user_id={self.user_id}, total_price={self.total_price}, status='{self.status}')>"


class OrderItem(Base):
    """Order line with a snapshot of the product at order time"""
    
    __tablename__ = "order_items"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Denormalized for history
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(500), nullable=True)
    
    order = relationship("Order", back_populates="items")
    
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='check_item_quantity_positive'),
    )
    
    def __repr__(self):
        return f"<OrderItem(order_id={self.order_id}, product_id={self.product_id}, quantity={self.quantity})>"


@event.listens_for(Session, "before_flush")
def _recalculate_order_prices(session, flush_context, instances):
    """Never trust stored or client-provided totals: rebuild them on every save"""
    orders = set()
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, Order):
            orders.add(obj)
        elif isinstance(obj, OrderItem) and obj.order is not None:
            orders.add(obj.order)
    for order in orders:
        order.recalculate_prices()
