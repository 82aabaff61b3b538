import json
import unittest
from unittest.mock import MagicMock, patch

from delivery_routing.clients.driver_notifier import (
    ROUTE_ASSIGNED_EVENT,
    DriverNotifier,
    _delivery_report,
    build_route_assigned_event,
)
from delivery_routing.core.domain import Depot, Location, OptimizationRequest, Stop
from delivery_routing.core.optimizer import RouteOptimizer
from delivery_routing.settings import KAFKA_FLUSH_TIMEOUT_SECONDS, ROUTE_ASSIGNED_TOPIC


def make_route():
    request = OptimizationRequest(
        depot=Depot(Location(0.0, 0.0)),
        stops=[Stop('1', Location(0.0, 0.1)), Stop('2', Location(0.0, 0.2))],
        driver_id='driver-7',
    )
    return RouteOptimizer().optimize(request)


class TestBuildRouteAssignedEvent(unittest.TestCase):

    def test_event_payload(self):
        event = build_route_assigned_event(make_route())

        self.assertEqual(event['event'], ROUTE_ASSIGNED_EVENT)
        self.assertEqual(event['driver_id'], 'driver-7')
        self.assertEqual(event['order_ids'], ['1', '2'])
        self.assertEqual([stop['sequence'] for stop in event['stops']], [1, 2])
        self.assertEqual(event['stops'][0]['estimated_arrival'], '08:22')
        self.assertEqual(event['stops'][1]['latitude'], 0.0)
        self.assertEqual(event['stops'][1]['longitude'], 0.2)
        self.assertAlmostEqual(event['total_distance_km'], 22.239, places=3)
        self.assertFalse(event['truncated'])
        # Must be JSON serializable as-is
        json.dumps(event)


class TestDriverNotifier(unittest.TestCase):

    def setUp(self):
        self.producer = MagicMock()
        self.producer.flush.return_value = 0
        self.notifier = DriverNotifier(producer=self.producer)
        self.route = make_route()

    def test_publishes_route_keyed_by_driver(self):
        self.assertTrue(self.notifier.notify_route_assigned(self.route))

        self.producer.produce.assert_called_once()
        args, kwargs = self.producer.produce.call_args
        self.assertEqual(args[0], ROUTE_ASSIGNED_TOPIC)
        self.assertEqual(kwargs['key'], b'driver-7')
        payload = json.loads(kwargs['value'].decode('utf-8'))
        self.assertEqual(payload['event'], 'route.assigned')
        self.assertEqual(payload['order_ids'], ['1', '2'])
        self.producer.flush.assert_called_once_with(KAFKA_FLUSH_TIMEOUT_SECONDS)

    def test_custom_topic(self):
        notifier = DriverNotifier(producer=self.producer, topic='drivers.routes')
        notifier.notify_route_assigned(self.route)

        self.assertEqual(self.producer.produce.call_args[0][0], 'drivers.routes')

    def test_produce_failure_returns_false(self):
        self.producer.produce.side_effect = BufferError("Local: Queue full")

        with self.assertLogs('delivery_routing.clients.driver_notifier', level='ERROR'):
            self.assertFalse(self.notifier.notify_route_assigned(self.route))

    def test_broker_rejection_returns_false(self):
        def flush(timeout):
            callback = self.producer.produce.call_args.kwargs['callback']
            callback("Broker: Message size too large", None)
            return 0
        self.producer.flush.side_effect = flush

        with self.assertLogs('delivery_routing.clients.driver_notifier', level='WARNING') as cm:
            self.assertFalse(self.notifier.notify_route_assigned(self.route))
        self.assertTrue(any("Message size too large" in line for line in cm.output))

    def test_acknowledged_delivery_returns_true(self):
        def flush(timeout):
            message = MagicMock()
            message.topic.return_value = ROUTE_ASSIGNED_TOPIC
            message.partition.return_value = 0
            self.producer.produce.call_args.kwargs['callback'](None, message)
            return 0
        self.producer.flush.side_effect = flush

        self.assertTrue(self.notifier.notify_route_assigned(self.route))

    def test_unflushed_messages_return_false(self):
        self.producer.flush.return_value = 1

        self.assertFalse(self.notifier.notify_route_assigned(self.route))

    @patch('delivery_routing.clients.driver_notifier.create_kafka_producer')
    def test_producer_created_lazily(self, mock_create_producer):
        mock_create_producer.return_value = self.producer
        notifier = DriverNotifier()
        mock_create_producer.assert_not_called()

        notifier.notify_route_assigned(self.route)
        notifier.notify_route_assigned(self.route)

        mock_create_producer.assert_called_once()

    def test_delivery_report_logs_failures(self):
        with self.assertLogs('delivery_routing.clients.driver_notifier', level='ERROR') as cm:
            _delivery_report("broker down", None)
        self.assertIn("broker down", cm.output[0])


if __name__ == '__main__':
    unittest.main()
