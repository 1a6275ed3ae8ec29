"""
Payment API endpoints
"""
from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_event_publisher, get_payment_simulator, require_admin
from storefront.database import get_db
from storefront.errors import ValidationError
from storefront.models.enums import PaymentStatus
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.schemas.base import ApiResponse, PaginationParams
from storefront.schemas.order import OrderResponse
from storefront.schemas.payment import (
    AdminPaymentResponse,
    CardDetailsInput,
    CardValidationData,
    PaymentListResponse,
    PaymentResponse,
    PaymentSummary,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    RefundRequest,
    RefundResponse
)
from storefront.services.card_validator import check_card
from storefront.services.payment_reporting import PaymentReportService
from storefront.services.payment_service import PaymentService
from storefront.services.payment_simulator import PaymentSimulator
from storefront.services.settlement_service import SettlementService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_settlement_service(
    db: Session = Depends(get_db),
    simulator: PaymentSimulator = Depends(get_payment_simulator),
    event_publisher: EventPublisher = Depends(get_event_publisher)
) -> SettlementService:
    """Dependency to get SettlementService instance"""
    return SettlementService(db, simulator=simulator, event_publisher=event_publisher)


def get_payment_service(
    db: Session = Depends(get_db),
    simulator: PaymentSimulator = Depends(get_payment_simulator),
    event_publisher: EventPublisher = Depends(get_event_publisher)
) -> PaymentService:
    """Dependency to get PaymentService instance"""
    return PaymentService(db, simulator=simulator, event_publisher=event_publisher)


def get_report_service(db: Session = Depends(get_db)) -> PaymentReportService:
    """Dependency to get PaymentReportService instance"""
    return PaymentReportService(db)


@router.post("/validate", response_model=ApiResponse[CardValidationData], summary="Validate card details")
def validate_payment(
    card_data: CardDetailsInput,
    user: User = Depends(get_current_user)
):
    """
    Check card fields without charging anything
    
    Returns the detected brand and last four digits, or the first failing check.
    """
    check = check_card(card_data.card_number, card_data.expiry_month, card_data.expiry_year, card_data.cvv)
    if not check.valid:
        raise ValidationError(check.reason)
    return ApiResponse(
        message="Payment details are valid",
        data=CardValidationData(card_brand=check.brand, last4=check.last4)
    )


@router.post("/process", response_model=ProcessPaymentResponse, summary="Process dummy payment")
async def process_payment(
    payment_data: ProcessPaymentRequest,
    user: User = Depends(get_current_user),
    service: SettlementService = Depends(get_settlement_service)
):
    """
    Charge an order through the simulated gateway
    
    Process:
    1. Check the order exists, belongs to the caller and is unpaid
    2. Validate the card (format, Luhn, brand, expiry, CVV)
    3. Open a payment and run the simulated charge
    4. Settle payment and order together
    
    A declined card answers 200 with success false.
    """
    result = await service.process_payment(user, payment_data)
    return ProcessPaymentResponse(
        success=result.success,
        message=result.message,
        transaction_id=result.transaction_id,
        payment_id=result.payment_id,
        processing_time_ms=result.processing_time_ms,
        order=OrderResponse.model_validate(result.order)
    )


@router.get("/status/{order_id}", response_model=ApiResponse[PaymentSummary], summary="Get payment status")
def get_payment_status(
    order_id: int,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """Summary of the latest payment attempt for an order"""
    payment = service.get_status_for_order(order_id, user)
    return ApiResponse(data=PaymentSummary.model_validate(payment))


@router.post("/refund", response_model=RefundResponse, summary="Process refund")
async def process_refund(
    refund_data: RefundRequest,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """
    Refund a completed payment (owner or admin)
    
    - **paymentId**: Payment to refund
    - **refundAmount**: Optional, defaults to the full payment amount
    - **reason**: Optional note
    """
    result = await service.refund(
        refund_data.payment_id,
        user,
        refund_amount=refund_data.refund_amount,
        reason=refund_data.reason
    )
    return RefundResponse(
        success=result.success,
        message=result.message,
        refund_amount=result.refund_amount,
        transaction_id=result.payment.transaction_id,
        data=PaymentResponse.model_validate(result.payment)
    )


@router.get("", response_model=PaymentListResponse, summary="Get all payments")
def get_payments(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Payments per page"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status", description="Filter by status"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="Created at or after"),
    end_date: Optional[datetime] = Query(None, alias="endDate", description="Created at or before"),
    admin: User = Depends(require_admin),
    service: PaymentReportService = Depends(get_report_service)
):
    """
    Paginated payment listing, newest first (admin only)
    
    Each payment carries its order lines and the payer's name and email.
    """
    payments, pagination = service.list_payments(
        PaginationParams(page=page, limit=limit),
        status=payment_status,
        start_date=start_date,
        end_date=end_date
    )
    return PaymentListResponse(
        data=[AdminPaymentResponse.model_validate(p) for p in payments],
        pagination=pagination
    )


@router.get("/export", summary="Export payments", response_model=ApiResponse[List[dict]])
def export_payments(
    export_format: str = Query("csv", alias="format", pattern="^(csv|json)$"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    admin: User = Depends(require_admin),
    service: PaymentReportService = Depends(get_report_service)
):
    """
    Export every matching payment (admin only)
    
    - **format**: csv (default, downloaded as a file) or json
    """
    if export_format == "json":
        return ApiResponse(data=service.export_rows(payment_status, start_date, end_date))
    
    content = service.export_csv(payment_status, start_date, end_date)
    filename = f"payments-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
