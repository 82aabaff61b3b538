from django.core.management.base import BaseCommand, CommandError

from delivery_routing.api.serializers import RouteOptimizationRequestSerializer, RouteOptimizationResponseSerializer
from delivery_routing.core.domain import OptimizationError
from delivery_routing.services.route_planning_service import RoutePlanningService
from delivery_routing.utils.helpers import safe_json_dumps


def _parse_depot(value):
    try:
        latitude, longitude = (float(part) for part in value.split(','))
    except ValueError:
        raise CommandError(f"--depot must be LAT,LNG, got '{value}'")
    return latitude, longitude


class Command(BaseCommand):
    help = 'Plan a delivery route for a driver and print it as JSON'

    def add_arguments(self, parser):
        parser.add_argument('--depot', required=True, help='Depot coordinates as LAT,LNG')
        parser.add_argument('--depot-name', default=None)
        parser.add_argument('--driver', required=True, help='Driver the route is assigned to')
        parser.add_argument('--orders', required=True, help='Comma-separated order ids')
        parser.add_argument('--capacity', type=float, default=None, help='Vehicle capacity')
        parser.add_argument('--max-duration', type=float, default=None, help='Maximum route duration in minutes')
        parser.add_argument('--speed', type=float, default=None, help='Average speed in km/h')
        parser.add_argument('--departure', default=None, help='Departure time as HH:MM')
        parser.add_argument('--return-to-depot', action='store_true')
        parser.add_argument('--time-limit', type=float, default=None, help='Optimizer time budget in seconds')
        parser.add_argument('--no-notify', action='store_true', help='Do not publish the assignment to the driver')

    def handle(self, *args, **options):
        latitude, longitude = _parse_depot(options['depot'])
        payload = {
            'depot': {'latitude': latitude, 'longitude': longitude, 'name': options['depot_name']},
            'orderIds': [order_id.strip() for order_id in options['orders'].split(',') if order_id.strip()],
            'driverId': options['driver'],
            'constraints': {
                'vehicleCapacity': options['capacity'],
                'maxRouteDurationMinutes': options['max_duration'],
                'averageSpeedKmh': options['speed'],
                'departureTime': options['departure'],
                'returnToDepot': options['return_to_depot'],
            },
            'notifyDriver': not options['no_notify'],
            'timeLimitSeconds': options['time_limit'],
        }

        serializer = RouteOptimizationRequestSerializer(data=payload)
        if not serializer.is_valid():
            raise CommandError(f"Invalid route request: {safe_json_dumps(serializer.errors)}")

        outcome = RoutePlanningService().plan_route(**serializer.to_service_kwargs())
        if isinstance(outcome, OptimizationError):
            self.stdout.write(safe_json_dumps(outcome.to_dict(), indent=2))
            raise CommandError(f"Route planning failed ({outcome.kind.value}): {outcome.message}")

        self.stdout.write(safe_json_dumps(RouteOptimizationResponseSerializer.from_route(outcome), indent=2))
        self.stdout.write(self.style.SUCCESS(f"Planned {len(outcome.stops)} stops for driver {outcome.driver_id}"))
