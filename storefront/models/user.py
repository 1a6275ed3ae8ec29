"""
SQLAlchemy User model
"""
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from storefront.database import Base
from storefront.models.enums import UserRole, enum_values


class User(Base):
    """Account resolved from the bearer token subject"""
    
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(
        Enum(UserRole, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=UserRole.USER
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
