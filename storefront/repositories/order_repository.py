"""
Order Repository - Data Access Layer
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from storefront.models.order import Order


class OrderRepository:
    """Repository for Order persistence"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def _filtered(
        self,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ):
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        if start_date:
            query = query.filter(Order.created_at >= start_date)
        if end_date:
            query = query.filter(Order.created_at <= end_date)
        return query
    
    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Order]:
        """Get orders newest first, with optional filters and pagination"""
        return self._filtered(status, start_date, end_date).order_by(
            desc(Order.created_at), desc(Order.id)
        ).offset(skip).limit(limit).all()
    
    def count(
        self,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> int:
        """Count orders matching the filters"""
        return self._filtered(status, start_date, end_date).count()
    
    def get_by_id(self, order_id: int) -> Optional[Order]:
        """Get order by ID"""
        return self.db.query(Order).filter(Order.id == order_id).first()
    
    def get_by_user(self, user_id: int) -> List[Order]:
        """Get orders placed by a user, newest first"""
        return self.db.query(Order).filter(
            Order.user_id == user_id
        ).order_by(desc(Order.created_at), desc(Order.id)).all()
    
    def add(self, order: Order) -> Order:
        """Stage a new order in the current transaction without committing"""
        self.db.add(order)
        self.db.flush()
        return order
    
    def save(self, order: Order) -> Order:
        """Commit pending changes to an order"""
        self.db.commit()
        self.db.refresh(order)
        return order
