import dataclasses
import hashlib
import json
import logging
from typing import Iterable, Optional

from django.conf import settings
from django.core.cache import cache

from delivery_routing.clients.driver_notifier import DriverNotifier
from delivery_routing.clients.order_store import OrderStoreClient
from delivery_routing.core.constants import TRUNCATED_ITERATION_LIMIT
from delivery_routing.core.domain import (
    Depot,
    OptimizationError,
    OptimizationOutcome,
    OptimizationRequest,
    Route,
    RouteConstraints,
)
from delivery_routing.core.exceptions import InvalidRequest, RouteOptimizationError
from delivery_routing.core.optimizer import RouteOptimizer
from delivery_routing.settings import MAX_IMPROVEMENT_ITERATIONS, OPTIMIZATION_TIME_LIMIT_SECONDS
from delivery_routing.utils.helpers import format_duration, format_route_for_display

logger = logging.getLogger(__name__)


class RoutePlanningService:
    def __init__(self, order_client=None, notifier=None, optimizer=None):
        """
        Initialize the route planning service.

        Args:
            order_client: Resolves order ids to stops. Defaults to OrderStoreClient.
            notifier: Publishes route assignments. Defaults to DriverNotifier.
            optimizer: The route optimizer. Defaults to a RouteOptimizer configured from settings.
        """
        self.order_client = order_client or OrderStoreClient()
        self.notifier = notifier or DriverNotifier()
        self.optimizer = optimizer or RouteOptimizer(
            max_iterations=MAX_IMPROVEMENT_ITERATIONS,
            time_limit_seconds=OPTIMIZATION_TIME_LIMIT_SECONDS
        )

    @staticmethod
    def _generate_cache_key(request: OptimizationRequest) -> str:
        """Generates a deterministic cache key from the resolved request."""
        key_parts = {
            "depot": dataclasses.asdict(request.depot),
            "stops": [dataclasses.asdict(stop) for stop in request.stops],
            "driver_id": request.driver_id,
            "constraints": dataclasses.asdict(request.constraints),
        }
        serialized_params = json.dumps(key_parts, sort_keys=True, default=str)
        return "route_plan_" + hashlib.md5(serialized_params.encode('utf-8')).hexdigest()

    @staticmethod
    def _is_cacheable(route: Route) -> bool:
        # Wall-clock and cancellation truncation depend on timing, not on input
        return route.truncation_reason in (None, TRUNCATED_ITERATION_LIMIT)

    def build_request(
        self,
        order_ids: Iterable[str],
        driver_id: Optional[str],
        depot: Depot,
        constraints: Optional[RouteConstraints] = None
    ) -> OptimizationRequest:
        """
        Resolve order ids to stops and assemble a validated request.

        Raises:
            RouteOptimizationError: an order could not be resolved, or the request is invalid.
        """
        order_ids = [str(order_id) for order_id in order_ids]
        if not order_ids:
            raise InvalidRequest("No order ids provided")
        duplicates = sorted({order_id for order_id in order_ids if order_ids.count(order_id) > 1})
        if duplicates:
            raise InvalidRequest(f"Duplicate order ids: {', '.join(duplicates)}")

        stops = self.order_client.resolve_stops(order_ids)
        return OptimizationRequest(
            depot=depot,
            stops=stops,
            driver_id=driver_id,
            constraints=constraints or RouteConstraints(),
        )

    def plan_route(
        self,
        order_ids: Iterable[str],
        driver_id: Optional[str],
        depot: Depot,
        constraints: Optional[RouteConstraints] = None,
        notify: bool = True,
        time_limit_seconds: Optional[float] = None
    ) -> OptimizationOutcome:
        """
        Plan a route for a batch of orders and hand it to the driver.

        Args:
            order_ids: Orders to deliver.
            driver_id: Driver the route is assigned to.
            depot: Where the route starts.
            constraints: Optional capacity, duration, speed and departure settings.
            notify: Publish a route assignment message when a route is found.
            time_limit_seconds: Optional wall-clock budget for the optimizer.

        Returns:
            A Route, or an OptimizationError; no exception escapes.
        """
        try:
            request = self.build_request(order_ids, driver_id, depot, constraints)
        except RouteOptimizationError as e:
            logger.warning(f"Rejected route request for driver {driver_id} ({e.kind.value}): {e.message}")
            return OptimizationError.from_exception(e)

        # --- Caching Logic ---
        cache_key = self._generate_cache_key(request)
        outcome = cache.get(cache_key)
        if isinstance(outcome, Route):
            logger.info(f"Returning cached route for key: {cache_key}")
        else:
            outcome = self.optimizer.optimize(request, time_limit_seconds=time_limit_seconds)
            if isinstance(outcome, Route) and self._is_cacheable(outcome):
                cache_timeout_seconds = getattr(settings, 'OPTIMIZATION_RESULT_CACHE_TIMEOUT', 3600)
                cache.set(cache_key, outcome, timeout=cache_timeout_seconds)
        # --- End Caching Logic ---

        if isinstance(outcome, OptimizationError):
            return outcome

        logger.info(
            f"Planned route for driver {driver_id}: "
            f"{format_route_for_display(outcome.order_ids, depot.name or 'Depot')} "
            f"({outcome.total_distance:.2f} km, {format_duration(outcome.total_duration)})"
        )

        if notify:
            if not self.notifier.notify_route_assigned(outcome):
                logger.warning(f"Route for driver {driver_id} computed but the driver was not notified")

        return outcome
