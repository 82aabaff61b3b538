import math
import unittest

import numpy as np

from delivery_routing.core.constants import EARTH_RADIUS_KM
from delivery_routing.core.distance import DistanceMatrixBuilder
from delivery_routing.core.domain import Location

KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180


class TestDistanceMatrixBuilder(unittest.TestCase):

    def setUp(self):
        self.locations = [
            Location(0.0, 0.0),
            Location(0.0, 1.0),
            Location(1.0, 0.0),
            Location(52.52, 13.405),
        ]

    def test_haversine_one_degree_along_equator(self):
        distance = DistanceMatrixBuilder.haversine_distance(Location(0.0, 0.0), Location(0.0, 1.0))
        self.assertAlmostEqual(distance, KM_PER_DEGREE, places=6)

    def test_haversine_known_city_pair(self):
        berlin = Location(52.5200, 13.4050)
        paris = Location(48.8566, 2.3522)
        self.assertAlmostEqual(DistanceMatrixBuilder.haversine_distance(berlin, paris), 877.5, delta=2.0)

    def test_haversine_is_exactly_symmetric(self):
        pairs = [
            (Location(12.9716, 77.5946), Location(13.0827, 80.2707)),
            (Location(-33.8688, 151.2093), Location(40.7128, -74.0060)),
            (Location(0.0, 1.0), Location(0.0, -1.0)),
        ]
        for a, b in pairs:
            with self.subTest(a=a, b=b):
                self.assertEqual(
                    DistanceMatrixBuilder.haversine_distance(a, b),
                    DistanceMatrixBuilder.haversine_distance(b, a),
                )

    def test_haversine_same_point_is_zero(self):
        point = Location(34.0522, -118.2437)
        self.assertEqual(DistanceMatrixBuilder.haversine_distance(point, point), 0.0)

    def test_haversine_antipodal_points(self):
        distance = DistanceMatrixBuilder.haversine_distance(Location(0.0, 0.0), Location(0.0, 180.0))
        self.assertAlmostEqual(distance, math.pi * EARTH_RADIUS_KM, places=3)

    def test_create_distance_matrix_shape_and_symmetry(self):
        matrix = DistanceMatrixBuilder.create_distance_matrix(self.locations)

        self.assertEqual(matrix.shape, (4, 4))
        np.testing.assert_array_equal(matrix, matrix.T)
        np.testing.assert_array_equal(np.diag(matrix), np.zeros(4))
        self.assertAlmostEqual(matrix[0, 1], KM_PER_DEGREE, places=6)
        self.assertAlmostEqual(matrix[0, 2], KM_PER_DEGREE, places=6)

    def test_create_distance_matrix_empty(self):
        matrix = DistanceMatrixBuilder.create_distance_matrix([])
        self.assertEqual(matrix.shape, (0, 0))

    def test_create_time_matrix(self):
        distances = np.array([[0.0, 30.0], [30.0, 0.0]])
        times = DistanceMatrixBuilder.create_time_matrix(distances, 30.0)
        np.testing.assert_allclose(times, np.array([[0.0, 60.0], [60.0, 0.0]]))

    def test_create_time_matrix_rejects_non_positive_speed(self):
        distances = np.zeros((2, 2))
        with self.assertRaises(ValueError):
            DistanceMatrixBuilder.create_time_matrix(distances, 0)
        with self.assertRaises(ValueError):
            DistanceMatrixBuilder.create_time_matrix(distances, -5)

    def test_path_distance(self):
        distances = np.array([
            [0.0, 1.0, 2.0],
            [1.0, 0.0, 3.0],
            [2.0, 3.0, 0.0],
        ])
        self.assertEqual(DistanceMatrixBuilder.path_distance(distances, [1, 2]), 4.0)
        self.assertEqual(DistanceMatrixBuilder.path_distance(distances, [2, 1]), 5.0)
        self.assertEqual(DistanceMatrixBuilder.path_distance(distances, []), 0.0)
        self.assertEqual(DistanceMatrixBuilder.path_distance(distances, [0], start=2), 2.0)


if __name__ == '__main__':
    unittest.main()
