"""
RabbitMQ Event Publisher
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

import pika
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.config import settings

logger = logging.getLogger(__name__)

ORDER_CREATED = ("OrderCreated", "order.created")
ORDER_STATUS_CHANGED = ("OrderStatusChanged", "order.status.changed")
PAYMENT_COMPLETED = ("PaymentCompleted", "payment.completed")
PAYMENT_FAILED = ("PaymentFailed", "payment.failed")
PAYMENT_REFUNDED = ("PaymentRefunded", "payment.refunded")


class EventPublisher:
    """
    Publisher for domain events on a topic exchange.
    
    Publishing is best effort: every publish_* method returns False instead
    of raising, so a broker outage never fails an order or a payment.
    """
    
    def __init__(self, enabled: Optional[bool] = None):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE
        self.enabled = settings.EVENTS_ENABLED if enabled is None else enabled
    
    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        retry=retry_if_exception_type(pika.exceptions.AMQPConnectionError),
        reraise=True
    )
    def _connect(self) -> pika.BlockingConnection:
        return pika.BlockingConnection(pika.URLParameters(self.rabbitmq_url))
    
    def build_event(self, event_type: str, data: Dict) -> Dict:
        return {
            "event_type": event_type,
            "event_id": str(uuid.uuid4()),
            "event_version": "1.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": settings.SERVICE_NAME,
            "data": data
        }
    
    def publish(self, event_type: str, routing_key: str, data: Dict) -> bool:
        """
        Publish one event
        
        Args:
            event_type: Event name, e.g. "PaymentCompleted"
            routing_key: Topic routing key
            data: JSON-serializable payload
        
        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.debug("Events disabled, dropping %s", event_type)
            return False
        
        event = self.build_event(event_type, data)
        try:
            connection = self._connect()
            try:
                channel = connection.channel()
                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type='topic',
                    durable=True
                )
                
                # Enable publisher confirms
                channel.confirm_delivery()
                
                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=routing_key,
                    body=json.dumps(event, default=str),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        correlation_id=event["event_id"]
                    )
                )
            finally:
                connection.close()
        except pika.exceptions.AMQPError as e:
            logger.warning("✗ Could not publish %s: %s", event_type, e)
            return False
        
        logger.info("✓ Event published: %s (ID: %s)", event_type, event["event_id"])
        return True
    
    def publish_order_created(self, order_data: Dict) -> bool:
        return self.publish(*ORDER_CREATED, order_data)
    
    def publish_order_status_changed(self, order_data: Dict) -> bool:
        return self.publish(*ORDER_STATUS_CHANGED, order_data)
    
    def publish_payment_completed(self, payment_data: Dict) -> bool:
        return self.publish(*PAYMENT_COMPLETED, payment_data)
    
    def publish_payment_failed(self, payment_data: Dict) -> bool:
        return self.publish(*PAYMENT_FAILED, payment_data)
    
    def publish_payment_refunded(self, payment_data: Dict) -> bool:
        return self.publish(*PAYMENT_REFUNDED, payment_data)
