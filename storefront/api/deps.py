"""
Shared FastAPI dependencies
"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.errors import AuthenticationError, AuthorizationError
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.user_repository import UserRepository
from storefront.security import decode_access_token
from storefront.services.payment_simulator import PaymentSimulator

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer token to a user row"""
    if credentials is None:
        raise AuthenticationError("Not authorized, no token")
    
    claims = decode_access_token(credentials.credentials)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Not authorized, token failed")
    
    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise AuthenticationError("Not authorized, user not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets administrators through"""
    if not user.is_admin:
        raise AuthorizationError("Not authorized as an admin")
    return user


def get_payment_simulator() -> PaymentSimulator:
    """Dependency to get the simulated gateway"""
    return PaymentSimulator()


def get_event_publisher() -> EventPublisher:
    """Dependency to get the domain event publisher"""
    return EventPublisher()
