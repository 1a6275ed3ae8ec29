"""
Admin reporting over payments: paginated listing and exports
"""
import csv
import io
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session

from storefront.models.enums import PaymentStatus
from storefront.models.payment import Payment
from storefront.repositories.payment_repository import PaymentRepository
from storefront.schemas.base import Pagination, PaginationParams

EXPORT_COLUMNS = ["Transaction ID", "Order ID", "User", "Amount", "Status", "Date", "Card Info"]


class PaymentReportService:
    """Read-only queries for the admin payment screens"""
    
    def __init__(self, db: Session):
        self.repository = PaymentRepository(db)
    
    def list_payments(
        self,
        pagination: PaginationParams,
        status: Optional[PaymentStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Tuple[List[Payment], Pagination]:
        """Newest first, filtered by status and creation date"""
        payments = self.repository.get_all(
            skip=pagination.skip,
            limit=pagination.limit,
            status=status,
            start_date=start_date,
            end_date=end_date
        )
        total = self.repository.count(status=status, start_date=start_date, end_date=end_date)
        return payments, pagination.describe(total)
    
    def export_rows(
        self,
        status: Optional[PaymentStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Dict]:
        """Every matching payment flattened to the export columns"""
        payments = self.repository.get_all(
            skip=0, limit=None, status=status, start_date=start_date, end_date=end_date
        )
        return [
            {
                "Transaction ID": payment.transaction_id,
                "Order ID": payment.order_id,
                "User": payment.user.name if payment.user else "",
                "Amount": f"{payment.amount:.2f}",
                "Status": PaymentStatus(payment.status).value,
                "Date": payment.created_at.isoformat() if payment.created_at else "",
                "Card Info": payment.card_info
            }
            for payment in payments
        ]
    
    def export_csv(
        self,
        status: Optional[PaymentStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
        writer.writeheader()
        writer.writerows(self.export_rows(status, start_date, end_date))
        return buffer.getvalue()
