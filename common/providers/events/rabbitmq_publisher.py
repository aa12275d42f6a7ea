import json
from typing import Any, Dict, Optional
from urllib.parse import quote

import aio_pika
from aio_pika import connect_robust, Message
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from .interface import EventPublisherInterface

logger = get_logger(__name__)

propagator = TraceContextTextMapPropagator()


class RabbitMQEventPublisher(EventPublisherInterface):
    """Publishes events to a durable topic exchange, routed by event name."""

    def __init__(self, exchange_name: Optional[str] = None):
        self.exchange_name = exchange_name or settings.events_exchange_name
        self.connection = None
        self.channel = None
        self.exchange = None

    async def connect(self) -> bool:
        try:
            url = (
                f"amqp://{quote(settings.rabbitmq_username)}:{quote(settings.rabbitmq_password)}"
                f"@{settings.rabbitmq_host}:{settings.rabbitmq_port}/{settings.rabbitmq_vhost}"
            )
            self.connection = await connect_robust(url)
            self.channel = await self.connection.channel(publisher_confirms=True)
            self.exchange = await self.channel.declare_exchange(
                name=self.exchange_name,
                type=aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
            logger.info(f"Connected to RabbitMQ exchange {self.exchange_name}")
            return True
        except (aio_pika.exceptions.AMQPError, OSError) as e:
            logger.error(f"Failed to connect to RabbitMQ: {e}")
            return False

    async def disconnect(self) -> None:
        if self.channel and not self.channel.is_closed:
            await self.channel.close()
        if self.connection and not self.connection.is_closed:
            await self.connection.close()
        self.exchange = None
        logger.info("Disconnected from RabbitMQ")

    async def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        if self.exchange is None or self.channel is None or self.channel.is_closed:
            if not await self.connect():
                return False

        # Carry the trace context so consumers can continue the span
        headers: Dict[str, Any] = {}
        propagator.inject(headers)

        msg = Message(
            body=json.dumps(
                {"event": event_name, "payload": payload}, default=str
            ).encode(),
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            content_type="application/json",
            headers=headers,
            type=event_name,
        )
        try:
            await self.exchange.publish(msg, routing_key=event_name)
        except (aio_pika.exceptions.AMQPError, OSError) as e:
            logger.error(f"Failed to publish {event_name}: {e}")
            return False

        logger.info(f"Published event {event_name}")
        return True
