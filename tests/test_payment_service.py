"""Tests for the payment record lifecycle and refunds."""

import asyncio

import pytest

from storefront.database import SessionLocal
from storefront.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from storefront.models import CardBrand, Payment, PaymentStatus
from storefront.services.card_validator import CardCheck
from storefront.services.payment_service import PaymentService
from storefront.services.payment_simulator import DECLINE_MESSAGE, PaymentSimulator, SimulationResult

VISA = CardCheck(valid=True, brand=CardBrand.VISA, last4="4242")


class DecliningSimulator(PaymentSimulator):
    async def simulate_charge(self, card_number, amount):
        return SimulationResult(False, DECLINE_MESSAGE, 0.0)


@pytest.fixture
def service(db, simulator, publisher):
    return PaymentService(db, simulator=simulator, event_publisher=publisher)


@pytest.fixture
def pending(service, alice, make_order):
    order = make_order(alice)
    return service.create_pending(order, alice, VISA, "7", "2030")


class TestCreatePending:
    def test_stores_card_summary_only(self, pending):
        assert pending.status == PaymentStatus.PROCESSING
        assert pending.amount == 110.0
        assert pending.currency == "USD"
        assert pending.card_last4 == "4242"
        assert pending.card_brand == CardBrand.VISA
        assert pending.card_expiry_month == "07"
        assert pending.card_info == "VISA ****4242"
        assert pending.refund_amount == 0.0

    def test_transaction_ids_are_unique(self, service, alice, make_order, pending):
        other = service.create_pending(make_order(alice), alice, VISA, "12", "2030")

        assert pending.transaction_id.startswith("TXN_")
        assert other.transaction_id != pending.transaction_id

    def test_transaction_id_is_immutable(self, pending):
        with pytest.raises(ValueError):
            pending.transaction_id = "TXN_OTHER"


class TestTransitions:
    def test_mark_completed(self, service, pending):
        payment = service.mark_completed(pending)

        assert payment.status == PaymentStatus.COMPLETED
        assert payment.processed_at is not None

    def test_mark_failed(self, service, pending):
        payment = service.mark_failed(pending, "Payment failed - insufficient funds")

        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment failed - insufficient funds"
        assert payment.processed_at is not None

    def test_cannot_complete_twice(self, service, pending):
        service.mark_completed(pending)

        with pytest.raises(InvalidStateError):
            service.mark_completed(pending)

    def test_failed_is_terminal(self, service, pending):
        service.mark_failed(pending, "declined")

        with pytest.raises(InvalidStateError):
            service.mark_completed(pending)


class TestStatusLookup:
    def test_latest_attempt_for_order(self, service, alice, make_order):
        order = make_order(alice)
        first = service.create_pending(order, alice, VISA, "12", "2030")
        service.mark_failed(first, "declined")
        second = service.create_pending(order, alice, VISA, "12", "2030")

        assert service.get_status_for_order(order.id, alice).id == second.id

    def test_admin_can_read(self, service, admin, pending):
        assert service.get_status_for_order(pending.order_id, admin).id == pending.id

    def test_other_user_cannot_read(self, service, bob, pending):
        with pytest.raises(AuthorizationError):
            service.get_status_for_order(pending.order_id, bob)

    def test_no_payment(self, service, alice, make_order):
        with pytest.raises(NotFoundError):
            service.get_status_for_order(make_order(alice).id, alice)


class TestRefund:
    def test_full_refund_by_default(self, service, alice, paid_order):
        result = asyncio.run(service.refund(paid_order.payment_id, alice))

        assert result.success
        assert result.payment.status == PaymentStatus.REFUNDED
        assert result.payment.refund_amount == 110.0
        assert result.payment.refunded_at is not None
        assert result.payment.failure_reason == "Customer request"

    def test_partial_refund_by_admin(self, service, admin, paid_order):
        result = asyncio.run(service.refund(paid_order.payment_id, admin, refund_amount=25.5, reason="Damaged box"))

        assert result.success
        assert result.refund_amount == 25.5
        assert result.payment.failure_reason == "Damaged box"

    def test_more_than_charged(self, service, alice, paid_order):
        with pytest.raises(ValidationError, match="cannot exceed"):
            asyncio.run(service.refund(paid_order.payment_id, alice, refund_amount=110.01))

    @pytest.mark.parametrize("settle", ["failed", "processing"])
    def test_only_completed_payments(self, service, alice, pending, settle):
        if settle == "failed":
            service.mark_failed(pending, "declined")

        with pytest.raises(InvalidStateError, match="must be completed"):
            asyncio.run(service.refund(pending.id, alice))

    def test_refund_twice(self, service, alice, paid_order):
        asyncio.run(service.refund(paid_order.payment_id, alice))

        with pytest.raises(InvalidStateError):
            asyncio.run(service.refund(paid_order.payment_id, alice))

    def test_other_user(self, service, bob, paid_order):
        with pytest.raises(AuthorizationError):
            asyncio.run(service.refund(paid_order.payment_id, bob))

    def test_unknown_payment(self, service, alice):
        with pytest.raises(NotFoundError):
            asyncio.run(service.refund(12345, alice))

    def test_declined_reversal_leaves_payment_completed(self, db, publisher, alice, paid_order):
        service = PaymentService(db, simulator=DecliningSimulator(), event_publisher=publisher)

        result = asyncio.run(service.refund(paid_order.payment_id, alice))

        assert not result.success
        assert result.message == "Refund processing failed"
        db.expire_all()
        payment = db.get(Payment, paid_order.payment_id)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.refund_amount == 0.0
        assert payment.refunded_at is None


class TestConcurrentRefund:
    def test_only_one_of_two_racing_refunds_wins(self, db, recorder, alice, paid_order):
        other_db = SessionLocal()
        services = [
            # Zero delay still yields to the event loop, so both refunds read "completed" first
            PaymentService(session, simulator=PaymentSimulator(min_delay_ms=0, max_delay_ms=0), event_publisher=recorder)
            for session in (db, other_db)
        ]

        async def refund_twice():
            return await asyncio.gather(
                *(service.refund(paid_order.payment_id, alice) for service in services),
                return_exceptions=True,
            )

        try:
            results = asyncio.run(refund_twice())
        finally:
            other_db.close()

        refunds = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(refunds) == 1
        assert refunds[0].success
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateError)
        assert [event[0] for event in recorder.events] == ["PaymentRefunded"]
        db.expire_all()
        payment = db.get(Payment, paid_order.payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_amount == 110.0
