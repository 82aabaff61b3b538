"""
Single-driver route optimizer.

Builds a route with a nearest-neighbour construction from the depot and then
improves it with 2-opt, swap and relocation moves, honouring vehicle capacity,
per-stop time windows and a maximum route duration.
"""
from typing import Callable, Iterator, List, NamedTuple, Optional, Tuple
import logging
import time

import numpy as np

from delivery_routing.core.constants import (
    COST_EPSILON,
    DEFAULT_MAX_IMPROVEMENT_ITERATIONS,
    TIME_EPSILON,
    TRUNCATED_CANCELLED,
    TRUNCATED_ITERATION_LIMIT,
    TRUNCATED_TIME_LIMIT,
)
from delivery_routing.core.distance import DistanceMatrixBuilder
from delivery_routing.core.domain import (
    OptimizationError,
    OptimizationOutcome,
    OptimizationRequest,
    Route,
    ScheduledStop,
    Stop,
    order_sort_key,
)
from delivery_routing.core.exceptions import (
    CapacityExceeded,
    ConstraintViolation,
    InvalidRequest,
    OptimizationTimeout,
    RouteOptimizationError,
)

logger = logging.getLogger(__name__)


class _Schedule(NamedTuple):
    visits: List[ScheduledStop]
    distance: float  # includes the return leg
    return_distance: float
    end_time: float


class _RouteModel:
    """
    Cost matrices and constraints for one request.

    Matrix index 0 is the depot; index i (1..n) is ``request.stops[i - 1]``.
    """

    def __init__(self, request: OptimizationRequest):
        self.request = request
        self.constraints = request.constraints
        self.stops = request.stops
        locations = [request.depot.location] + [stop.location for stop in self.stops]
        self.distances: np.ndarray = DistanceMatrixBuilder.create_distance_matrix(locations)
        self.travel_minutes: np.ndarray = DistanceMatrixBuilder.create_time_matrix(
            self.distances, self.constraints.average_speed_kmh
        )
        self.km_per_minute = self.constraints.average_speed_kmh / 60.0

    def stop_at(self, index: int) -> Stop:
        return self.stops[index - 1]

    def exceeds_duration(self, clock: float) -> bool:
        limit = self.constraints.max_route_duration_minutes
        return limit is not None and clock - self.constraints.departure_time > limit + TIME_EPSILON

    def exceeds_capacity(self, load: float) -> bool:
        capacity = self.constraints.vehicle_capacity
        return capacity is not None and load > capacity + COST_EPSILON

    def distance(self, sequence: List[int]) -> float:
        total = DistanceMatrixBuilder.path_distance(self.distances, sequence)
        if self.constraints.return_to_depot and sequence:
            total += float(self.distances[sequence[-1], 0])
        return total

    def schedule(self, sequence: List[int]) -> Optional[_Schedule]:
        """
        Walk ``sequence`` from the depot, deriving arrival times.

        Returns None if any capacity, time window or duration constraint is broken.
        """
        clock = float(self.constraints.departure_time)
        load = 0.0
        cumulative = 0.0
        position = 0
        visits = []

        for sequence_number, index in enumerate(sequence, start=1):
            stop = self.stop_at(index)
            load += stop.demand
            if self.exceeds_capacity(load):
                return None

            arrival = clock + float(self.travel_minutes[position, index])
            window = stop.time_window
            if window is not None and window.latest is not None and arrival > window.latest + TIME_EPSILON:
                return None
            start = arrival
            if window is not None and window.earliest is not None and arrival < window.earliest:
                start = float(window.earliest)

            leg = float(self.distances[position, index])
            cumulative += leg
            clock = start + stop.service_time
            if self.exceeds_duration(clock):
                return None

            visits.append(ScheduledStop(
                stop=stop,
                sequence=sequence_number,
                estimated_arrival=start,
                wait_minutes=start - arrival,
                departure=clock,
                leg_distance=leg,
                cumulative_distance=cumulative,
            ))
            position = index

        return_distance = 0.0
        if self.constraints.return_to_depot and sequence:
            return_distance = float(self.distances[position, 0])
            clock += float(self.travel_minutes[position, 0])
            if self.exceeds_duration(clock):
                return None

        return _Schedule(visits, cumulative + return_distance, return_distance, clock)


class RouteOptimizer:
    """
    Nearest-neighbour construction followed by local improvement.

    The optimizer holds configuration only; every call works on its own data,
    so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_IMPROVEMENT_ITERATIONS,
        time_limit_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the optimizer.

        Args:
            max_iterations: Cap on accepted improvement moves. Reaching it marks
                the result as truncated.
            time_limit_seconds: Default wall-clock budget per call, or None for no limit.
            clock: Monotonic clock used for the budget (injectable for tests).
        """
        if max_iterations is None or max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {max_iterations}")
        self.max_iterations = max_iterations
        self.time_limit_seconds = time_limit_seconds
        self.clock = clock

    def optimize(
        self,
        request: OptimizationRequest,
        time_limit_seconds: Optional[float] = None,
        cancel_event=None
    ) -> OptimizationOutcome:
        """
        Compute a route for the request.

        Args:
            request: A validated OptimizationRequest.
            time_limit_seconds: Overrides the optimizer's default wall-clock budget.
            cancel_event: Optional object with ``is_set()`` (e.g. threading.Event)
                checked before every construction step and improvement iteration.

        Returns:
            A Route, or an OptimizationError describing why none could be built.
        """
        try:
            self._check_request(request)

            limit = time_limit_seconds if time_limit_seconds is not None else self.time_limit_seconds
            deadline = self.clock() + limit if limit is not None else None

            logger.info(
                f"Optimizing route for driver {request.driver_id}: {len(request.stops)} stops, "
                f"capacity={request.constraints.vehicle_capacity}, "
                f"max_duration={request.constraints.max_route_duration_minutes}"
            )
            model = _RouteModel(request)
            self._check_capacity(model)

            sequence = self._construct(model, deadline, cancel_event)
            construction_distance = model.distance(sequence)
            logger.debug(f"Construction finished with distance {construction_distance:.3f} km")

            sequence, iterations, truncation_reason = self._improve(model, sequence, deadline, cancel_event)

            schedule = model.schedule(sequence)
            if schedule is None:
                raise ConstraintViolation("Constructed route does not satisfy the request constraints")

            route = Route(
                driver_id=request.driver_id,
                depot=request.depot,
                stops=tuple(schedule.visits),
                total_distance=schedule.distance,
                total_duration=schedule.end_time - request.constraints.departure_time,
                departure_time=float(request.constraints.departure_time),
                return_distance=schedule.return_distance,
                truncated=truncation_reason is not None,
                truncation_reason=truncation_reason,
                improvement_iterations=iterations,
                construction_distance=construction_distance,
            )
            if route.truncated:
                logger.warning(
                    f"Improvement truncated ({truncation_reason}) after {iterations} moves; "
                    f"returning best route found"
                )
            logger.info(
                f"Route optimized: {len(route.stops)} stops, {route.total_distance:.2f} km "
                f"(construction {construction_distance:.2f} km), {route.total_duration:.1f} min"
            )
            return route

        except RouteOptimizationError as e:
            logger.warning(f"Route optimization failed ({e.kind.value}): {e.message}")
            return OptimizationError.from_exception(e)

    @staticmethod
    def _check_request(request):
        if not isinstance(request, OptimizationRequest):
            raise InvalidRequest(f"Expected an OptimizationRequest, got {type(request).__name__}")
        request.validate()

    @staticmethod
    def _check_capacity(model: _RouteModel):
        capacity = model.constraints.vehicle_capacity
        if capacity is None:
            return
        for stop in model.stops:
            if model.exceeds_capacity(stop.demand):
                raise CapacityExceeded(
                    f"Stop {stop.order_id} demand {stop.demand} exceeds vehicle capacity {capacity}"
                )
        total_demand = sum(stop.demand for stop in model.stops)
        if model.exceeds_capacity(total_demand):
            raise CapacityExceeded(
                f"Total demand {total_demand} exceeds vehicle capacity {capacity}; split the batch"
            )

    def _interruption(self, deadline: Optional[float], cancel_event) -> Optional[str]:
        if cancel_event is not None and cancel_event.is_set():
            return TRUNCATED_CANCELLED
        if deadline is not None and self.clock() >= deadline:
            return TRUNCATED_TIME_LIMIT
        return None

    def _construct(self, model: _RouteModel, deadline: Optional[float], cancel_event) -> List[int]:
        """
        Nearest-neighbour construction.

        Raises:
            CapacityExceeded: every remaining stop is over the remaining capacity.
            ConstraintViolation: no remaining stop can be reached in time.
            OptimizationTimeout: the budget ran out or the call was cancelled.
        """
        constraints = model.constraints
        # Scan in ascending order id so the first of equal-cost candidates wins
        remaining = sorted(range(1, len(model.stops) + 1), key=lambda i: order_sort_key(model.stop_at(i).order_id))
        sequence = []
        position = 0
        clock = float(constraints.departure_time)
        load = 0.0

        while remaining:
            interruption = self._interruption(deadline, cancel_event)
            if interruption == TRUNCATED_CANCELLED:
                raise OptimizationTimeout("Optimization cancelled before a route was constructed")
            if interruption == TRUNCATED_TIME_LIMIT:
                raise OptimizationTimeout("Time limit exceeded before a route was constructed")

            best_index = None
            best_cost = None
            best_finish = None
            over_capacity = 0

            for index in remaining:
                stop = model.stop_at(index)
                if model.exceeds_capacity(load + stop.demand):
                    over_capacity += 1
                    continue

                arrival = clock + float(model.travel_minutes[position, index])
                window = stop.time_window
                if window is not None and window.latest is not None and arrival > window.latest + TIME_EPSILON:
                    continue
                wait = 0.0
                if window is not None and window.earliest is not None and arrival < window.earliest:
                    wait = window.earliest - arrival

                finish = arrival + wait + stop.service_time
                end = finish
                if constraints.return_to_depot:
                    end += float(model.travel_minutes[index, 0])
                if model.exceeds_duration(end):
                    continue

                cost = float(model.distances[position, index]) + wait * model.km_per_minute
                if best_cost is None or cost < best_cost - COST_EPSILON:
                    best_index, best_cost, best_finish = index, cost, finish

            if best_index is None:
                pending = ', '.join(model.stop_at(i).order_id for i in remaining)
                if over_capacity == len(remaining):
                    raise CapacityExceeded(
                        f"Remaining capacity {constraints.vehicle_capacity - load} is insufficient "
                        f"for stops: {pending}"
                    )
                raise ConstraintViolation(
                    f"No remaining stop is reachable within its time window or the route duration "
                    f"limit from the current schedule: {pending}"
                )

            stop = model.stop_at(best_index)
            logger.debug(f"Step {len(sequence) + 1}: order {stop.order_id} (cost {best_cost:.3f})")
            sequence.append(best_index)
            remaining.remove(best_index)
            load += stop.demand
            clock = best_finish
            position = best_index

        return sequence

    def _improve(
        self,
        model: _RouteModel,
        sequence: List[int],
        deadline: Optional[float],
        cancel_event
    ) -> Tuple[List[int], int, Optional[str]]:
        """
        First-improvement local search.

        Returns:
            (best sequence, accepted moves, truncation reason or None if converged)
        """
        best_distance = model.distance(sequence)
        iterations = 0

        while True:
            if iterations >= self.max_iterations:
                # A cap of 0 skips the search entirely and always reports truncation
                if iterations > 0 and self._find_improving_move(model, sequence, best_distance) is None:
                    logger.debug(f"Local search converged at the iteration cap ({iterations} moves)")
                    return sequence, iterations, None
                return sequence, iterations, TRUNCATED_ITERATION_LIMIT
            interruption = self._interruption(deadline, cancel_event)
            if interruption is not None:
                return sequence, iterations, interruption

            improved = self._find_improving_move(model, sequence, best_distance)
            if improved is None:
                logger.debug(f"Local search converged after {iterations} moves")
                return sequence, iterations, None

            sequence, best_distance = improved
            iterations += 1

    @staticmethod
    def _find_improving_move(
        model: _RouteModel,
        sequence: List[int],
        best_distance: float
    ) -> Optional[Tuple[List[int], float]]:
        for candidate in RouteOptimizer._neighbours(sequence):
            distance = model.distance(candidate)
            if distance < best_distance - COST_EPSILON and model.schedule(candidate) is not None:
                return candidate, distance
        return None

    @staticmethod
    def _neighbours(sequence: List[int]) -> Iterator[List[int]]:
        """Yield candidate orders in a fixed scan order: 2-opt, swap, relocation."""
        n = len(sequence)

        # 2-opt: reverse sequence[i..j]
        for i in range(n - 1):
            for j in range(i + 1, n):
                yield sequence[:i] + sequence[i:j + 1][::-1] + sequence[j + 1:]

        # Swap two non-adjacent stops (adjacent swaps are 2-opt moves)
        for i in range(n - 2):
            for j in range(i + 2, n):
                candidate = list(sequence)
                candidate[i], candidate[j] = candidate[j], candidate[i]
                yield candidate

        # Relocate one stop to another position
        for i in range(n):
            moved = sequence[i]
            remainder = sequence[:i] + sequence[i + 1:]
            for j in range(n):
                if j == i:
                    continue
                yield remainder[:j] + [moved] + remainder[j:]
