"""
User Repository - Data Access Layer
"""
from typing import Optional
from sqlalchemy.orm import Session

from storefront.models.user import User


class UserRepository:
    """Repository for resolving authenticated users"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return self.db.query(User).filter(User.id == user_id).first()
