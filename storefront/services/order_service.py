"""
Order Service - Business Logic Layer
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.errors import AuthorizationError, InternalError, NotFoundError, StorefrontError, ValidationError
from storefront.models.enums import OrderStatus
from storefront.models.order import Order, OrderItem
from storefront.models.user import User
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.schemas.base import Pagination, PaginationParams
from storefront.schemas.order import OrderCreate, OrderQuote, OrderQuoteRequest, OrderStatusUpdate
from storefront.services.pricing import compute_prices

logger = logging.getLogger(__name__)


def ensure_order_access(order: Order, user: User):
    """Owner or administrator only"""
    if order.user_id != user.id and not user.is_admin:
        raise AuthorizationError("Not authorized to access this order")


class OrderService:
    """Service layer for order business logic"""
    
    def __init__(self, db: Session, event_publisher: Optional[EventPublisher] = None):
        self.db = db
        self.repository = OrderRepository(db)
        self.products = ProductRepository(db)
        self.event_publisher = event_publisher or EventPublisher()
    
    def quote(self, quote_request: OrderQuoteRequest) -> OrderQuote:
        """Price a cart with the authoritative rule without reserving stock"""
        lines = []
        for item in quote_request.order_items:
            product = self.products.get_by_id(item.product)
            if not product:
                raise NotFoundError("Product", item.product)
            lines.append((product.price, item.quantity))
        
        breakdown = compute_prices(lines)
        return OrderQuote(
            items_price=breakdown.items_price,
            tax_price=breakdown.tax_price,
            shipping_price=breakdown.shipping_price,
            total_price=breakdown.total_price,
            tax_rate=settings.TAX_RATE,
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            flat_shipping_fee=settings.FLAT_SHIPPING_FEE
        )
    
    def create_order(self, user: User, order_data: OrderCreate) -> Order:
        """
        Create new order
        
        Steps:
        1. Look up every requested product
        2. Reserve stock with a conditional decrement per line
        3. Snapshot name, price and image onto the order lines
        4. Save the order (prices are computed on flush)
        5. Publish OrderCreated event
        
        All lines succeed or none do: any failure rolls the whole
        transaction back, including decrements already applied.
        
        Raises:
            NotFoundError: If a product doesn't exist
            ValidationError: If a product has insufficient stock
            InternalError: If the database fails
        """
        try:
            lines = []
            for item in order_data.order_items:
                product = self.products.get_by_id(item.product)
                if not product:
                    raise NotFoundError("Product", item.product)
                
                if not self.products.reserve_stock(product.id, item.quantity):
                    available = self.products.current_stock(product.id)
                    raise ValidationError(
                        f"Insufficient stock for {product.name}. Available: {available}"
                    )
                
                lines.append(OrderItem(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    quantity=item.quantity,
                    image=product.image_url
                ))
            
            order = Order(
                user_id=user.id,
                items=lines,
                shipping_address=order_data.shipping_address.model_dump(),
                payment_method=order_data.payment_method,
                notes=order_data.notes,
                status=OrderStatus.PENDING,
                is_paid=False,
                is_delivered=False
            )
            self.repository.add(order)
            self.db.commit()
        except StorefrontError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Create order failed for user %s", user.id)
            raise InternalError("Server error during order creation") from e
        
        self.db.refresh(order)
        logger.info("Order %s created for user %s, total %.2f", order.id, user.id, order.total_price)
        
        self.event_publisher.publish_order_created({
            'order_id': order.id,
            'user_id': order.user_id,
            'items': [
                {'product_id': line.product_id, 'quantity': line.quantity, 'price': line.price}
                for line in order.items
            ],
            'total_price': order.total_price,
            'status': OrderStatus(order.status).value
        })
        return order
    
    def get_order(self, order_id: int, user: User) -> Order:
        """Get an order the caller owns (admins see all)"""
        order = self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        ensure_order_access(order, user)
        return order
    
    def get_my_orders(self, user: User) -> List[Order]:
        """Get orders of the current user"""
        return self.repository.get_by_user(user.id)
    
    def get_all_orders(
        self,
        pagination: PaginationParams,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Tuple[List[Order], Pagination]:
        """Get all orders with filters and pagination"""
        orders = self.repository.get_all(
            skip=pagination.skip,
            limit=pagination.limit,
            status=status,
            start_date=start_date,
            end_date=end_date
        )
        total = self.repository.count(status=status, start_date=start_date, end_date=end_date)
        return orders, pagination.describe(total)
    
    def update_order_status(self, order_id: int, status_data: OrderStatusUpdate) -> Order:
        """
        Update order status
        
        Args:
            order_id: Order ID
            status_data: New status and optional tracking number
        
        Returns:
            Updated order
        
        Raises:
            NotFoundError: If the order doesn't exist
            InvalidStateError: If the lifecycle doesn't allow the move
        """
        order = self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        
        old_status = OrderStatus(order.status)
        order.transition_to(status_data.status)
        if status_data.tracking_number:
            order.tracking_number = status_data.tracking_number
        
        try:
            order = self.repository.save(order)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Status update failed for order %s", order_id)
            raise InternalError("Server error during status update") from e
        
        logger.info("Order %s moved %s -> %s", order.id, old_status.value, OrderStatus(order.status).value)
        
        self.event_publisher.publish_order_status_changed({
            'order_id': order.id,
            'old_status': old_status.value,
            'new_status': OrderStatus(order.status).value,
            'tracking_number': order.tracking_number,
            'updated_at': order.updated_at.isoformat()
        })
        return order
    
    def mark_delivered(self, order_id: int) -> Order:
        """Shortcut for moving an order to delivered"""
        return self.update_order_status(order_id, OrderStatusUpdate(status=OrderStatus.DELIVERED))
