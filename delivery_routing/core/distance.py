"""
Distance and travel-time utilities for route optimization.

This module provides the haversine cost model and the matrices built from it
that the optimizer works on.
"""
from typing import List, Sequence
import logging
import numpy as np

from delivery_routing.core.constants import EARTH_RADIUS_KM
from delivery_routing.core.domain import Location

logger = logging.getLogger(__name__)


class DistanceMatrixBuilder:
    """
    Builder class for the distance and time matrices used in route optimization.
    """

    @staticmethod
    def _haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Calculate the great circle distance between two points
        on the earth (specified in decimal degrees).

        Args:
            lat1, lon1: Coordinates of first point
            lat2, lon2: Coordinates of second point

        Returns:
            Distance in kilometers
        """
        # Convert decimal degrees to radians
        lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])

        dlon = lon2 - lon1
        dlat = lat2 - lat1
        a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
        # Rounding can push a marginally above 1 for antipodal points
        c = 2 * np.arcsin(np.sqrt(min(float(a), 1.0)))

        return float(c * EARTH_RADIUS_KM)

    @staticmethod
    def haversine_distance(origin: Location, destination: Location) -> float:
        """
        Travel cost in kilometers between two locations.

        The endpoints are put in a canonical order before evaluating so the
        result is bit-for-bit symmetric.
        """
        a = (origin.latitude, origin.longitude)
        b = (destination.latitude, destination.longitude)
        if a == b:
            return 0.0
        if b < a:
            a, b = b, a
        return DistanceMatrixBuilder._haversine_distance(a[0], a[1], b[0], b[1])

    @staticmethod
    def create_distance_matrix(locations: Sequence[Location]) -> np.ndarray:
        """
        Create a symmetric distance matrix (km) for the given locations.

        Args:
            locations: Locations in matrix order.

        Returns:
            2D numpy array with a zero diagonal.
        """
        num_locations = len(locations)
        if num_locations == 0:
            return np.zeros((0, 0))

        matrix = np.zeros((num_locations, num_locations))
        for i in range(num_locations):
            for j in range(i + 1, num_locations):
                distance = DistanceMatrixBuilder.haversine_distance(locations[i], locations[j])
                matrix[i, j] = distance
                matrix[j, i] = distance

        logger.debug(f"Built {num_locations}x{num_locations} haversine distance matrix")
        return matrix

    @staticmethod
    def create_time_matrix(distance_matrix: np.ndarray, average_speed_kmh: float) -> np.ndarray:
        """
        Convert a distance matrix (km) into travel times (minutes).

        Args:
            distance_matrix: Distances in kilometers.
            average_speed_kmh: Assumed constant travel speed.

        Returns:
            2D numpy array of travel times in minutes.
        """
        if not average_speed_kmh or average_speed_kmh <= 0:
            raise ValueError(f"Average speed must be positive, got {average_speed_kmh}")
        return np.asarray(distance_matrix, dtype=float) / average_speed_kmh * 60.0

    @staticmethod
    def path_distance(distance_matrix: np.ndarray, sequence: List[int], start: int = 0) -> float:
        """
        Total distance of visiting ``sequence`` (matrix indices) starting at ``start``.
        """
        total = 0.0
        position = start
        for index in sequence:
            total += distance_matrix[position, index]
            position = index
        return float(total)
