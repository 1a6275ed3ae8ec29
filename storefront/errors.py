"""
Typed errors raised by the payment, settlement and order services.

Every error carries the HTTP status the API layer answers with; the handlers
in ``storefront.main`` turn them into ``{"success": false, "message": ...}``.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StorefrontError):
    """Invalid card fields, insufficient stock, refund larger than the payment."""

    status_code = 400


class ConflictError(StorefrontError):
    """Raised when an order is already paid or has a payment in flight."""

    status_code = 400


class InvalidStateError(StorefrontError):
    """Raised on an illegal order or payment status transition."""

    status_code = 400

    def __init__(self, entity: str, current: str, target: str, message: str | None = None):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move {entity} from '{current}' to '{target}'")


class AuthenticationError(StorefrontError):
    """Missing, malformed or expired bearer token."""

    status_code = 401


class AuthorizationError(StorefrontError):
    """Caller neither owns the resource nor is an administrator."""

    status_code = 403


class NotFoundError(StorefrontError):
    """Raised when an order, payment or product doesn't exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} not found: {entity_id}"
        super().__init__(msg)


class InternalError(StorefrontError):
    """Persistence or infrastructure failure."""

    status_code = 500
