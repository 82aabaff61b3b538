"""
Serializers for the delivery routing API.

This module provides serializers for converting between API requests/responses
and the internal data structures used by the route optimizer.
"""
import logging
from rest_framework import serializers

from delivery_routing.core.domain import Depot, Location, Route, RouteConstraints
from delivery_routing.settings import AVERAGE_SPEED_KMH, DEFAULT_DEPARTURE_TIME
from delivery_routing.utils.helpers import convert_minutes_to_time_str, convert_time_str_to_minutes

logger = logging.getLogger(__name__)


def validate_positive(value):
    if value is not None and value <= 0:
        raise serializers.ValidationError("Ensure this value is greater than 0.")


class DepotSerializer(serializers.Serializer):
    """Serializer for the route's start location."""
    latitude = serializers.FloatField(min_value=-90, max_value=90, help_text="Latitude of the depot in decimal degrees.")
    longitude = serializers.FloatField(min_value=-180, max_value=180, help_text="Longitude of the depot in decimal degrees.")
    name = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True,
                                 help_text="Human-readable name of the depot (optional).")

    def to_depot(self, data) -> Depot:
        return Depot(
            location=Location(latitude=data['latitude'], longitude=data['longitude']),
            name=data.get('name') or None,
        )


class RouteConstraintsSerializer(serializers.Serializer):
    """Serializer for optional routing constraints. Field names follow the public camelCase contract."""
    vehicleCapacity = serializers.FloatField(source='vehicle_capacity', required=False, allow_null=True, validators=[validate_positive],
                                             help_text="Vehicle capacity in the same units as order demand. Unlimited if omitted.")
    maxRouteDurationMinutes = serializers.FloatField(source='max_route_duration_minutes', required=False, allow_null=True, validators=[validate_positive],
                                                     help_text="Maximum route duration from departure, in minutes. Unlimited if omitted.")
    averageSpeedKmh = serializers.FloatField(source='average_speed_kmh', required=False, allow_null=True, validators=[validate_positive],
                                             help_text="Assumed average travel speed in km/h.")
    departureTime = serializers.CharField(source='departure_time', required=False, allow_null=True, max_length=5,
                                          help_text="Departure time from the depot, HH:MM.")
    returnToDepot = serializers.BooleanField(source='return_to_depot', default=False,
                                             help_text="If true, the route ends back at the depot.")

    def validate_departureTime(self, value):
        if value in (None, ''):
            return None
        if convert_time_str_to_minutes(value) is None:
            raise serializers.ValidationError("Departure time must be in HH:MM format.")
        return value

    def to_constraints(self, data) -> RouteConstraints:
        departure = data.get('departure_time') or DEFAULT_DEPARTURE_TIME
        average_speed = data.get('average_speed_kmh')
        return RouteConstraints(
            vehicle_capacity=data.get('vehicle_capacity'),
            max_route_duration_minutes=data.get('max_route_duration_minutes'),
            average_speed_kmh=average_speed if average_speed is not None else AVERAGE_SPEED_KMH,
            departure_time=convert_time_str_to_minutes(departure),
            return_to_depot=data.get('return_to_depot', False),
        )


class RouteOptimizationRequestSerializer(serializers.Serializer):
    """Serializer for route optimization requests."""
    depot = DepotSerializer(help_text="Where the driver starts.")
    orderIds = serializers.ListField(child=serializers.CharField(max_length=64), source='order_ids',
                                     help_text="Orders to put on the route.")
    driverId = serializers.CharField(max_length=64, source='driver_id', help_text="Driver the route is assigned to.")
    constraints = RouteConstraintsSerializer(required=False, allow_null=True, help_text="Optional routing constraints.")
    notifyDriver = serializers.BooleanField(source='notify_driver', default=True,
                                            help_text="Publish the assignment to the driver once planned. Default is True.")
    timeLimitSeconds = serializers.FloatField(source='time_limit_seconds', required=False, allow_null=True, min_value=0,
                                              help_text="Optional wall-clock budget for the optimizer, in seconds.")

    def to_service_kwargs(self):
        data = self.validated_data
        constraints_data = data.get('constraints') or {}
        return {
            'order_ids': data['order_ids'],
            'driver_id': data['driver_id'],
            'depot': DepotSerializer().to_depot(data['depot']),
            'constraints': RouteConstraintsSerializer().to_constraints(constraints_data),
            'notify': data.get('notify_driver', True),
            'time_limit_seconds': data.get('time_limit_seconds'),
        }


class RouteStopSerializer(serializers.Serializer):
    """Serializer for one stop on an optimized route."""
    orderId = serializers.CharField(help_text="Order delivered at this stop.")
    sequence = serializers.IntegerField(help_text="1-based position on the route.")
    estimatedArrival = serializers.CharField(help_text="Estimated arrival (service start), HH:MM.")
    estimatedArrivalMinutes = serializers.FloatField(help_text="Estimated arrival in minutes from midnight.")
    waitMinutes = serializers.FloatField(help_text="Wait before the stop's time window opens.")
    cumulativeDistance = serializers.FloatField(help_text="Distance travelled from the depot, in kilometers.")


class RouteOptimizationResponseSerializer(serializers.Serializer):
    """Serializer for a planned route."""
    driverId = serializers.CharField(allow_null=True, help_text="Driver the route is assigned to.")
    stops = RouteStopSerializer(many=True, help_text="Stops in visiting order.")
    totalDistance = serializers.FloatField(help_text="Total route distance in kilometers.")
    totalDuration = serializers.FloatField(help_text="Total route duration in minutes (travel, waits and service).")
    returnDistance = serializers.FloatField(help_text="Distance of the return leg, 0 unless the route returns to the depot.")
    truncated = serializers.BooleanField(help_text="True if local search stopped before converging.")
    truncationReason = serializers.CharField(allow_null=True, help_text="iteration_limit, time_limit or cancelled.")
    improvementIterations = serializers.IntegerField(help_text="Number of improving moves applied.")

    @staticmethod
    def from_route(route: Route):
        return {
            'driverId': route.driver_id,
            'stops': [
                {
                    'orderId': scheduled.order_id,
                    'sequence': scheduled.sequence,
                    'estimatedArrival': convert_minutes_to_time_str(scheduled.estimated_arrival),
                    'estimatedArrivalMinutes': round(scheduled.estimated_arrival, 2),
                    'waitMinutes': round(scheduled.wait_minutes, 2),
                    'cumulativeDistance': round(scheduled.cumulative_distance, 3),
                }
                for scheduled in route.stops
            ],
            'totalDistance': round(route.total_distance, 3),
            'totalDuration': round(route.total_duration, 2),
            'returnDistance': round(route.return_distance, 3),
            'truncated': route.truncated,
            'truncationReason': route.truncation_reason,
            'improvementIterations': route.improvement_iterations,
        }


class OptimizationErrorSerializer(serializers.Serializer):
    """Serializer for a failed optimization."""
    kind = serializers.CharField(help_text="invalid_request, constraint_violation, capacity_exceeded, timeout or order_store_unavailable.")
    message = serializers.CharField(help_text="Human-readable description of the failure.")
