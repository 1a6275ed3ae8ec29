"""
Payment Repository - Data Access Layer
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc, update

from storefront.models.enums import PaymentStatus
from storefront.models.order import Order
from storefront.models.payment import Payment


class PaymentRepository:
    """Repository for Payment persistence and admin queries"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """Get payment by ID"""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()
    
    def get_latest_for_order(self, order_id: int) -> Optional[Payment]:
        """Most recent charge attempt for an order"""
        return self.db.query(Payment).filter(
            Payment.order_id == order_id
        ).order_by(desc(Payment.id)).first()
    
    def has_in_flight(self, order_id: int) -> bool:
        """Whether a charge for the order is still awaiting the gateway"""
        return self.db.query(Payment.id).filter(
            Payment.order_id == order_id,
            Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.PROCESSING])
        ).first() is not None
    
    def create(self, payment: Payment) -> Payment:
        """
        Persist a new payment
        
        The transaction id is generated by the column default on insert.
        """
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        return payment
    
    def save(self, payment: Payment) -> Payment:
        """Commit pending changes to a payment"""
        self.db.commit()
        self.db.refresh(payment)
        return payment
    
    def mark_refunded(self, payment_id: int, refund_amount: float, refunded_at: datetime, reason: str) -> bool:
        """
        Move a completed payment to refunded in a single conditional UPDATE
        
        Runs inside the caller's transaction and does not commit.
        
        Returns:
            True if the payment was still completed and is now refunded
        """
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.COMPLETED)
            .values(
                status=PaymentStatus.REFUNDED,
                refund_amount=refund_amount,
                refunded_at=refunded_at,
                failure_reason=reason
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
    
    def _filtered(
        self,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ):
        query = self.db.query(Payment)
        if status:
            query = query.filter(Payment.status == status)
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)
        return query
    
    def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Payment]:
        """Payments newest first with their order lines and payer loaded"""
        query = self._filtered(status, start_date, end_date).options(
            joinedload(Payment.user),
            joinedload(Payment.order).selectinload(Order.items)
        ).order_by(desc(Payment.created_at), desc(Payment.id)).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()
    
    def count(
        self,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> int:
        """Count payments matching the filters"""
        return self._filtered(status, start_date, end_date).count()
