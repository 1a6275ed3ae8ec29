"""
SQLAlchemy Product model
"""
from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from storefront.database import Base


class Product(Base):
    """
    Catalog row as seen by checkout.
    
    Order lines copy name, price and image at order time; only ``stock`` is
    ever written here, through ``ProductRepository.reserve_stock``.
    """
    
    __tablename__ = "products"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(100), nullable=True, index=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    __table_args__ = (
        CheckConstraint('price >= 0', name='check_product_price_non_negative'),
        # Last line of defence if a decrement ever bypasses reserve_stock
        CheckConstraint('stock >= 0', name='check_product_stock_non_negative'),
    )
    
    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
