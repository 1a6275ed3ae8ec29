"""
Order settlement: one checkout attempt from order lookup to paid order.

    AwaitingOrder -> Validating -> Charging -> Settled(success | failure)

Validation failures stop before any payment row exists. Once a payment is
opened the caller always gets a definitive verdict; a declined card is a
normal result, not an exception. A charge that never reaches a verdict
(gateway or database failure) is failed so the order can be paid again.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.errors import (
    AuthorizationError, ConflictError, InternalError, InvalidStateError, NotFoundError, StorefrontError,
    ValidationError
)
from storefront.models.enums import OrderStatus, PaymentStatus
from storefront.models.order import Order
from storefront.models.payment import Payment
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.payment import ProcessPaymentRequest
from storefront.services.card_validator import CardCheck, check_card
from storefront.services.payment_service import PaymentService
from storefront.services.payment_simulator import PaymentSimulator, SimulationResult

logger = logging.getLogger(__name__)

PROCESSING_ERROR_MESSAGE = "Payment processing error"


@dataclass
class SettlementResult:
    success: bool
    message: str
    transaction_id: str
    payment_id: int
    processing_time_ms: float
    order: Order
    payment: Payment


class SettlementService:
    """Coordinates card validation, the simulated charge and the order update"""
    
    def __init__(
        self,
        db: Session,
        simulator: Optional[PaymentSimulator] = None,
        event_publisher: Optional[EventPublisher] = None
    ):
        self.db = db
        self.orders = OrderRepository(db)
        self.simulator = simulator or PaymentSimulator()
        self.event_publisher = event_publisher or EventPublisher()
        self.payments = PaymentService(db, simulator=self.simulator, event_publisher=self.event_publisher)
    
    def load_payable_order(self, order_id: int, user: User) -> Order:
        """
        Fetch the order and reject anything that must not be charged
        
        Raises:
            NotFoundError: If the order doesn't exist
            AuthorizationError: If the caller doesn't own the order
            ConflictError: If the order is paid or a charge is in flight
            InvalidStateError: If the order was cancelled
        """
        order = self.orders.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        if order.user_id != user.id:
            raise AuthorizationError("Not authorized to access this order")
        if order.is_paid:
            raise ConflictError("Order is already paid")
        if OrderStatus(order.status) == OrderStatus.CANCELLED:
            raise InvalidStateError("order", OrderStatus.CANCELLED.value, "paid", "Cannot pay for a cancelled order")
        if self.payments.repository.has_in_flight(order.id):
            raise ConflictError("A payment for this order is already in progress")
        return order
    
    @staticmethod
    def validate_card(card_number, expiry_month, expiry_year, cvv) -> CardCheck:
        """Card checks in checkout order; the first failure is raised"""
        check = check_card(card_number, expiry_month, expiry_year, cvv)
        if not check.valid:
            raise ValidationError(check.reason)
        return check
    
    async def process_payment(self, user: User, payment_data: ProcessPaymentRequest) -> SettlementResult:
        """
        Charge an order
        
        Args:
            user: Authenticated caller, must own the order
            payment_data: Order reference and raw card fields
        
        Returns:
            SettlementResult with success False when the card was declined
        """
        order = self.load_payable_order(payment_data.order_id, user)
        
        card = self.validate_card(
            payment_data.card_number,
            payment_data.expiry_month,
            payment_data.expiry_year,
            payment_data.cvv
        )
        
        payment = self.payments.create_pending(
            order, user, card, payment_data.expiry_month, payment_data.expiry_year
        )
        payment_id = payment.id
        try:
            outcome = await self.simulator.simulate_charge(payment_data.card_number, order.total_price)
            result = self.settle(order, payment, outcome)
        except InternalError:
            self.release_unsettled(payment, payment_id)
            raise
        except Exception as e:
            logger.exception("Charge for payment %s did not complete", payment_id)
            self.release_unsettled(payment, payment_id)
            raise InternalError("Server error during payment processing") from e
        
        await run_in_threadpool(self.publish_outcome, result)
        return result
    
    def settle(self, order: Order, payment: Payment, outcome: SimulationResult) -> SettlementResult:
        """Apply the gateway verdict to the payment and the order in one commit"""
        try:
            if outcome.success:
                self.payments.mark_completed(payment, commit=False)
                order.mark_paid(payment.transaction_id, order.user.email)
            else:
                self.payments.mark_failed(payment, outcome.message, commit=False)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.exception("Settlement of payment %s failed", payment.id)
            self.db.rollback()
            raise InternalError("Server error during payment processing") from e
        
        self.db.refresh(order)
        self.db.refresh(payment)
        
        if outcome.success:
            logger.info("✓ Order %s paid, transaction %s", order.id, payment.transaction_id)
        else:
            logger.info("✗ Payment %s for order %s declined: %s", payment.id, order.id, outcome.message)
        
        return SettlementResult(
            success=outcome.success,
            message=outcome.message,
            transaction_id=payment.transaction_id,
            payment_id=payment.id,
            processing_time_ms=outcome.processing_time_ms,
            order=order,
            payment=payment
        )
    
    def release_unsettled(self, payment: Payment, payment_id: int):
        """
        Fail a payment whose charge never reached a verdict
        
        Without this the processing row would block every later attempt on
        the order. If the database is still failing the row stays in
        processing and the error is logged.
        """
        self.db.rollback()
        try:
            self.payments.mark_failed(payment, PROCESSING_ERROR_MESSAGE)
        except (StorefrontError, SQLAlchemyError):
            self.db.rollback()
            logger.exception("✗ Payment %s left in processing after a settlement error", payment_id)
    
    def publish_outcome(self, result: SettlementResult) -> bool:
        """Publish PaymentCompleted or PaymentFailed for a settled charge"""
        payment = result.payment
        event_data = {
            'payment_id': result.payment_id,
            'order_id': payment.order_id,
            'transaction_id': result.transaction_id,
            'amount': payment.amount,
            'currency': payment.currency,
            'status': PaymentStatus(payment.status).value
        }
        if result.success:
            return self.event_publisher.publish_payment_completed(event_data)
        event_data['failure_reason'] = payment.failure_reason
        return self.event_publisher.publish_payment_failed(event_data)
