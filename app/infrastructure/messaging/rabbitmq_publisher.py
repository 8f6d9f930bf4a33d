# app/infrastructure/messaging/rabbitmq_publisher.py

import json
from typing import Optional

import aio_pika

from app.config.settings import settings
from app.domain.models.notification import NotificationRecord

EXCHANGE_NOTIFICATIONS = "tracker_notifications"


class RabbitMQPublisher:
    """
    Publishes stored notifications to a topic exchange for downstream delivery
    (mail, push). Delivery is at-least-once; the idempotency_key header is the
    notification id so consumers can drop duplicates.
    """

    def __init__(self, url: Optional[str] = None, exchange_name: str = EXCHANGE_NOTIFICATIONS):
        self._url = url or settings.rabbitmq_url
        self._exchange_name = exchange_name
        self._connection = None
        self._channel = None
        self._exchange = None

    async def connect(self):
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

    async def publish_notification(self, notification: NotificationRecord):
        if not self._exchange:
            await self.connect()

        msg = aio_pika.Message(
            body=json.dumps(notification.to_document()).encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=notification.id,
            headers={
                "idempotency_key": notification.id,
                "tenant_id": notification.tenant_id,
            },
        )

        await self._exchange.publish(msg, routing_key=f"notification.{notification.kind.value}")

    async def close(self):
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
