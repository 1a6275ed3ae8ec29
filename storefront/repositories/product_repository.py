"""
Product Repository - Data Access Layer
"""
from typing import Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.models.product import Product


class ProductRepository:
    """Repository for the product lookups and stock updates the checkout needs"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Get product by ID"""
        return self.db.query(Product).filter(Product.id == product_id).first()
    
    def reserve_stock(self, product_id: int, quantity: int) -> bool:
        """
        Atomically decrement stock if at least ``quantity`` units remain
        
        Runs inside the caller's transaction and does not commit.
        
        Returns:
            True if the stock was decremented, False if it was insufficient
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
    
    def current_stock(self, product_id: int) -> int:
        stock = self.db.query(Product.stock).filter(Product.id == product_id).scalar()
        return stock or 0
