"""
Payment Service - payment record lifecycle and refunds
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.errors import (
    AuthorizationError, InternalError, InvalidStateError, NotFoundError, ValidationError
)
from storefront.models.enums import PaymentMethod, PaymentStatus
from storefront.models.order import Order
from storefront.models.payment import Payment
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.payment_repository import PaymentRepository
from storefront.services.card_validator import CardCheck
from storefront.services.payment_simulator import PaymentSimulator
from storefront.services.pricing import to_money

logger = logging.getLogger(__name__)


@dataclass
class RefundResult:
    success: bool
    message: str
    payment: Payment
    refund_amount: float


def ensure_payment_access(payment: Payment, user: User):
    """Owner or administrator only"""
    if payment.user_id != user.id and not user.is_admin:
        raise AuthorizationError("Not authorized to access this payment")


class PaymentService:
    """Creates payments and moves them through their status lifecycle"""
    
    def __init__(
        self,
        db: Session,
        simulator: Optional[PaymentSimulator] = None,
        event_publisher: Optional[EventPublisher] = None
    ):
        self.db = db
        self.repository = PaymentRepository(db)
        self.simulator = simulator or PaymentSimulator()
        self.event_publisher = event_publisher or EventPublisher()
    
    def _commit(self, payment: Payment, action: str) -> Payment:
        try:
            return self.repository.save(payment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Could not %s payment %s", action, payment.id)
            raise InternalError(f"Server error during payment {action}") from e
    
    def create_pending(
        self,
        order: Order,
        user: User,
        card: CardCheck,
        expiry_month: str,
        expiry_year: str
    ) -> Payment:
        """
        Persist a payment in processing state right before the gateway call
        
        The amount is always the order's server-side total.
        """
        if order.payment_method == PaymentMethod.DEBIT_CARD:
            method = PaymentMethod.DEBIT_CARD
        else:
            method = PaymentMethod.CREDIT_CARD
        
        payment = Payment(
            order_id=order.id,
            user_id=user.id,
            amount=order.total_price,
            currency=settings.DEFAULT_CURRENCY,
            payment_method=method,
            card_last4=card.last4,
            card_brand=card.brand,
            card_expiry_month=str(expiry_month).zfill(2),
            card_expiry_year=str(expiry_year),
            status=PaymentStatus.PROCESSING,
            refund_amount=0.0
        )
        try:
            payment = self.repository.create(payment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Could not create payment for order %s", order.id)
            raise InternalError("Server error during payment processing") from e
        
        logger.info("Payment %s (%s) opened for order %s", payment.id, payment.transaction_id, order.id)
        return payment
    
    def mark_completed(self, payment: Payment, commit: bool = True) -> Payment:
        """Move a pending/processing payment to completed"""
        payment.transition_to(PaymentStatus.COMPLETED)
        payment.processed_at = datetime.now(timezone.utc)
        if commit:
            return self._commit(payment, "completion")
        return payment
    
    def mark_failed(self, payment: Payment, reason: str, commit: bool = True) -> Payment:
        """Move a pending/processing payment to failed with the decline reason"""
        payment.transition_to(PaymentStatus.FAILED)
        payment.processed_at = datetime.now(timezone.utc)
        payment.failure_reason = reason
        if commit:
            return self._commit(payment, "failure")
        return payment
    
    def get_payment(self, payment_id: int, user: User) -> Payment:
        payment = self.repository.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment", payment_id)
        ensure_payment_access(payment, user)
        return payment
    
    def get_status_for_order(self, order_id: int, user: User) -> Payment:
        """Latest charge attempt for an order"""
        payment = self.repository.get_latest_for_order(order_id)
        if not payment:
            raise NotFoundError("Payment", f"order {order_id}")
        ensure_payment_access(payment, user)
        return payment
    
    async def refund(
        self,
        payment_id: int,
        user: User,
        refund_amount: Optional[float] = None,
        reason: Optional[str] = None
    ) -> RefundResult:
        """
        Refund a completed payment
        
        Args:
            payment_id: Payment ID
            user: Caller, must own the payment or be an administrator
            refund_amount: Amount to give back, the full charge when omitted
            reason: Note stored on the payment
        
        Returns:
            RefundResult; success is False when the simulated reversal is
            declined, in which case the payment stays completed
        
        Raises:
            NotFoundError, AuthorizationError, InvalidStateError, ValidationError
        """
        payment = self.get_payment(payment_id, user)
        
        if PaymentStatus(payment.status) != PaymentStatus.COMPLETED:
            raise InvalidStateError(
                "payment",
                PaymentStatus(payment.status).value,
                PaymentStatus.REFUNDED.value,
                "Payment must be completed to process refund"
            )
        
        amount = payment.amount if refund_amount is None else refund_amount
        if to_money(amount) > to_money(payment.amount):
            raise ValidationError("Refund amount cannot exceed payment amount")
        
        reversal = await self.simulator.simulate_charge(payment.card_last4, amount)
        if not reversal.success:
            logger.warning("Refund of payment %s declined by gateway: %s", payment.id, reversal.message)
            return RefundResult(False, "Refund processing failed", payment, float(amount))
        
        # Re-checked in the UPDATE itself: another refund may have landed while
        # the reversal was in flight
        try:
            refunded = self.repository.mark_refunded(
                payment.id,
                float(to_money(amount)),
                datetime.now(timezone.utc),
                reason or "Customer request"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Could not refund payment %s", payment_id)
            raise InternalError("Server error during payment refund") from e
        
        if not refunded:
            self.db.rollback()
            raise InvalidStateError(
                "payment",
                PaymentStatus(payment.status).value,
                PaymentStatus.REFUNDED.value,
                "Payment must be completed to process refund"
            )
        payment = self._commit(payment, "refund")
        
        logger.info("Payment %s refunded %.2f", payment.id, payment.refund_amount)
        await run_in_threadpool(self.event_publisher.publish_payment_refunded, {
            'payment_id': payment.id,
            'order_id': payment.order_id,
            'transaction_id': payment.transaction_id,
            'refund_amount': payment.refund_amount,
            'reason': payment.failure_reason
        })
        return RefundResult(True, "Refund processed successfully", payment, payment.refund_amount)
