"""
Driver notifications.

After a route is planned, a ``route.assigned`` message is produced to Kafka so
the driver app (and anything else listening) can pick the assignment up. The
optimizer never talks to Kafka itself.
"""
from typing import Any, Dict, Optional
import json
import logging

from confluent_kafka import KafkaException, Producer

from delivery_routing.core.domain import Route
from delivery_routing.settings import (
    KAFKA_BROKER_URL,
    KAFKA_FLUSH_TIMEOUT_SECONDS,
    ROUTE_ASSIGNED_TOPIC,
)
from delivery_routing.utils.helpers import convert_minutes_to_time_str

logger = logging.getLogger(__name__)

ROUTE_ASSIGNED_EVENT = 'route.assigned'


def create_kafka_producer():
    return Producer({'bootstrap.servers': KAFKA_BROKER_URL})


def build_route_assigned_event(route: Route) -> Dict[str, Any]:
    return {
        'event': ROUTE_ASSIGNED_EVENT,
        'driver_id': route.driver_id,
        'order_ids': route.order_ids,
        'stops': [
            {
                'order_id': scheduled.order_id,
                'sequence': scheduled.sequence,
                'estimated_arrival': convert_minutes_to_time_str(scheduled.estimated_arrival),
                'latitude': scheduled.stop.location.latitude,
                'longitude': scheduled.stop.location.longitude,
            }
            for scheduled in route.stops
        ],
        'total_distance_km': round(route.total_distance, 3),
        'total_duration_minutes': round(route.total_duration, 1),
        'truncated': route.truncated,
    }


def _delivery_report(err, msg):
    if err is not None:
        logger.error(f"Route assignment delivery failed: {err}")
    else:
        logger.debug(f"Route assignment delivered to {msg.topic()} [{msg.partition()}]")


class DriverNotifier:
    """Publishes route assignments for drivers."""

    def __init__(self, producer=None, topic: Optional[str] = None):
        self._producer = producer
        self.topic = topic or ROUTE_ASSIGNED_TOPIC

    @property
    def producer(self):
        if self._producer is None:
            self._producer = create_kafka_producer()
        return self._producer

    def notify_route_assigned(self, route: Route) -> bool:
        """
        Publish a route assignment.

        Returns:
            True if the broker acknowledged the message, False otherwise.
        """
        event = build_route_assigned_event(route)
        delivery_errors = []

        def on_delivery(err, msg):
            if err is not None:
                delivery_errors.append(err)
            _delivery_report(err, msg)

        try:
            self.producer.produce(
                self.topic,
                key=str(route.driver_id).encode('utf-8'),
                value=json.dumps(event).encode('utf-8'),
                callback=on_delivery,
            )
            remaining = self.producer.flush(KAFKA_FLUSH_TIMEOUT_SECONDS)
        except (KafkaException, BufferError) as e:
            logger.error(f"Failed to publish route assignment for driver {route.driver_id}: {e}", exc_info=True)
            return False

        if remaining:
            logger.warning(f"{remaining} route assignment message(s) still queued after flush")
            return False

        if delivery_errors:
            logger.warning(f"Broker rejected route assignment for driver {route.driver_id}: {delivery_errors[0]}")
            return False

        logger.info(
            f"Published {ROUTE_ASSIGNED_EVENT} for driver {route.driver_id} "
            f"({len(route.stops)} stops) to '{self.topic}'"
        )
        return True
