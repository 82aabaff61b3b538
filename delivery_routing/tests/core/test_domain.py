import unittest

from delivery_routing.core.domain import (
    Depot,
    Location,
    OptimizationError,
    OptimizationRequest,
    RouteConstraints,
    Stop,
    TimeWindow,
    order_sort_key,
)
from delivery_routing.core.exceptions import (
    CapacityExceeded,
    ErrorKind,
    InvalidRequest,
    OrderStoreUnavailable,
)


class TestOrderSortKey(unittest.TestCase):

    def test_numeric_ids_sort_by_value_before_text_ids(self):
        ids = ['10', 'b-7', '2', 'a-1', '1']
        self.assertEqual(sorted(ids, key=order_sort_key), ['1', '2', '10', 'a-1', 'b-7'])

    def test_accepts_non_string_ids(self):
        self.assertEqual(order_sort_key(7), order_sort_key('7'))

    def test_equal_numeric_values_are_ordered_by_text(self):
        self.assertLess(order_sort_key('01'), order_sort_key('1'))
        self.assertEqual(sorted(['1', '01', '001'], key=order_sort_key), ['001', '01', '1'])

    def test_digit_like_characters_sort_as_text(self):
        # Superscripts pass str.isdigit() but are not valid integers
        self.assertEqual(order_sort_key('²'), (1, 0, '²'))
        self.assertEqual(sorted(['²', '10', 'a'], key=order_sort_key), ['10', '²', 'a'])


class TestLocation(unittest.TestCase):

    def test_string_coordinates_are_converted(self):
        location = Location("12.5", "-45.25")
        self.assertEqual(location.latitude, 12.5)
        self.assertEqual(location.longitude, -45.25)

    def test_is_valid(self):
        self.assertTrue(Location(90.0, 180.0).is_valid())
        self.assertTrue(Location(-90.0, -180.0).is_valid())
        self.assertFalse(Location(90.1, 0.0).is_valid())
        self.assertFalse(Location(0.0, -180.5).is_valid())
        self.assertFalse(Location(None, 0.0).is_valid())


class TestOptimizationRequest(unittest.TestCase):

    def setUp(self):
        self.depot = Depot(Location(0.0, 0.0), name="Main depot")
        self.stops = [
            Stop('1', Location(0.0, 1.0)),
            Stop('2', Location(0.0, 2.0)),
        ]

    def test_valid_request(self):
        request = OptimizationRequest(depot=self.depot, stops=self.stops, driver_id='driver-1')
        self.assertEqual(len(request.stops), 2)
        self.assertIsInstance(request.stops, tuple)
        self.assertEqual(request.constraints, RouteConstraints())

    def test_none_constraints_default(self):
        request = OptimizationRequest(depot=self.depot, stops=self.stops, constraints=None)
        self.assertEqual(request.constraints, RouteConstraints())

    def test_rejects_empty_stops(self):
        with self.assertRaisesRegex(InvalidRequest, "No stops"):
            OptimizationRequest(depot=self.depot, stops=[])

    def test_rejects_duplicate_order_ids(self):
        stops = self.stops + [Stop('1', Location(1.0, 1.0))]
        with self.assertRaisesRegex(InvalidRequest, "Duplicate order id: 1"):
            OptimizationRequest(depot=self.depot, stops=stops)

    def test_rejects_out_of_range_coordinates(self):
        with self.assertRaises(InvalidRequest):
            OptimizationRequest(depot=self.depot, stops=[Stop('1', Location(91.0, 0.0))])
        with self.assertRaises(InvalidRequest):
            OptimizationRequest(depot=self.depot, stops=[Stop('1', Location(0.0, 181.0))])

    def test_rejects_invalid_depot(self):
        with self.assertRaisesRegex(InvalidRequest, "Depot"):
            OptimizationRequest(depot=Depot(Location(-91.0, 0.0)), stops=self.stops)
        with self.assertRaisesRegex(InvalidRequest, "Depot"):
            OptimizationRequest(depot=None, stops=self.stops)

    def test_rejects_negative_demand_and_service_time(self):
        with self.assertRaisesRegex(InvalidRequest, "negative demand"):
            OptimizationRequest(depot=self.depot, stops=[Stop('1', Location(0.0, 1.0), demand=-1)])
        with self.assertRaisesRegex(InvalidRequest, "negative service time"):
            OptimizationRequest(depot=self.depot, stops=[Stop('1', Location(0.0, 1.0), service_time=-2)])

    def test_rejects_inverted_time_window(self):
        stop = Stop('1', Location(0.0, 1.0), time_window=TimeWindow(earliest=600, latest=540))
        with self.assertRaisesRegex(InvalidRequest, "time window"):
            OptimizationRequest(depot=self.depot, stops=[stop])

    def test_open_ended_time_windows_are_accepted(self):
        stops = [
            Stop('1', Location(0.0, 1.0), time_window=TimeWindow(earliest=600)),
            Stop('2', Location(0.0, 2.0), time_window=TimeWindow(latest=700)),
        ]
        request = OptimizationRequest(depot=self.depot, stops=stops)
        self.assertEqual(len(request.stops), 2)

    def test_rejects_bad_constraints(self):
        bad_constraints = [
            RouteConstraints(vehicle_capacity=0),
            RouteConstraints(max_route_duration_minutes=-10),
            RouteConstraints(average_speed_kmh=0),
            RouteConstraints(departure_time=-1),
        ]
        for constraints in bad_constraints:
            with self.subTest(constraints=constraints):
                with self.assertRaises(InvalidRequest):
                    OptimizationRequest(depot=self.depot, stops=self.stops, constraints=constraints)


class TestOptimizationError(unittest.TestCase):

    def test_from_exception_keeps_kind_and_message(self):
        error = OptimizationError.from_exception(CapacityExceeded("too heavy"))
        self.assertEqual(error.kind, ErrorKind.CAPACITY_EXCEEDED)
        self.assertEqual(error.message, "too heavy")

    def test_to_dict(self):
        error = OptimizationError.from_exception(OrderStoreUnavailable("down"))
        self.assertEqual(error.to_dict(), {'kind': 'order_store_unavailable', 'message': 'down'})


if __name__ == '__main__':
    unittest.main()
