"""
Core data types for the route optimizer.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union
import logging

from delivery_routing.core.constants import (
    DEFAULT_AVERAGE_SPEED_KMH,
    DEFAULT_DEPARTURE_MINUTES,
    DEFAULT_STOP_DEMAND,
    DEFAULT_STOP_SERVICE_MINUTES,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from delivery_routing.core.exceptions import ErrorKind, InvalidRequest, RouteOptimizationError

logger = logging.getLogger(__name__)


def order_sort_key(order_id: str) -> Tuple[int, int, str]:
    """
    Sort key giving the ascending order-identifier ordering used for tie-breaks.

    Numeric identifiers compare by value and sort ahead of non-numeric ones,
    so "2" comes before "10". Equal values ("01", "1") fall back to the text.
    """
    text = str(order_id)
    if text.isdecimal():
        return (0, int(text), text)
    return (1, 0, text)


@dataclass(frozen=True)
class Location:
    """
    Represents a geographic location with latitude and longitude.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        # Convert to float if strings were provided
        if isinstance(self.latitude, str):
            object.__setattr__(self, 'latitude', float(self.latitude))
        if isinstance(self.longitude, str):
            object.__setattr__(self, 'longitude', float(self.longitude))

    def is_valid(self) -> bool:
        try:
            return (MIN_LATITUDE <= self.latitude <= MAX_LATITUDE
                    and MIN_LONGITUDE <= self.longitude <= MAX_LONGITUDE)
        except TypeError:
            return False


@dataclass(frozen=True)
class TimeWindow:
    """Earliest/latest permissible arrival, in minutes from midnight."""
    earliest: Optional[float] = None
    latest: Optional[float] = None


@dataclass(frozen=True)
class Stop:
    """One delivery: an order and where it has to be dropped off."""
    order_id: str
    location: Location
    demand: float = DEFAULT_STOP_DEMAND
    service_time: float = DEFAULT_STOP_SERVICE_MINUTES  # minutes
    time_window: Optional[TimeWindow] = None


@dataclass(frozen=True)
class Depot:
    """Start (and, for round trips, end) of a route."""
    location: Location
    name: Optional[str] = None


@dataclass(frozen=True)
class RouteConstraints:
    vehicle_capacity: Optional[float] = None
    max_route_duration_minutes: Optional[float] = None
    average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH
    departure_time: float = DEFAULT_DEPARTURE_MINUTES  # minutes from midnight
    return_to_depot: bool = False

    def validate(self):
        for name in ('vehicle_capacity', 'max_route_duration_minutes'):
            value = getattr(self, name)
            if value is not None and not value > 0:
                raise InvalidRequest(f"{name} must be a positive number, got {value}")
        if self.average_speed_kmh is None or not self.average_speed_kmh > 0:
            raise InvalidRequest(f"average_speed_kmh must be a positive number, got {self.average_speed_kmh}")
        if self.departure_time is None or self.departure_time < 0:
            raise InvalidRequest(f"departure_time must be minutes from midnight, got {self.departure_time}")


@dataclass
class OptimizationRequest:
    """
    Everything the optimizer needs for one driver's route.

    Validated on construction; ``validate()`` can be called again by consumers
    that need to re-check a request they did not build themselves.
    """
    depot: Depot
    stops: Sequence[Stop]
    driver_id: Optional[str] = None
    constraints: RouteConstraints = field(default_factory=RouteConstraints)

    def __post_init__(self):
        self.stops = tuple(self.stops or ())
        if self.constraints is None:
            self.constraints = RouteConstraints()
        self.validate()

    def validate(self):
        """
        Check request invariants.

        Raises:
            InvalidRequest: on an empty stop set, duplicate order ids,
                out-of-range coordinates or inconsistent stop attributes.
        """
        if not self.stops:
            raise InvalidRequest("No stops provided")

        if not isinstance(self.depot, Depot) or not isinstance(self.depot.location, Location):
            raise InvalidRequest("Depot location is missing")
        if not self.depot.location.is_valid():
            raise InvalidRequest(
                f"Depot has invalid coordinates: "
                f"({self.depot.location.latitude}, {self.depot.location.longitude})"
            )

        seen = set()
        for stop in self.stops:
            if stop.order_id in seen:
                raise InvalidRequest(f"Duplicate order id: {stop.order_id}")
            seen.add(stop.order_id)

            if not isinstance(stop.location, Location) or not stop.location.is_valid():
                raise InvalidRequest(f"Stop {stop.order_id} has invalid coordinates: {stop.location}")
            if stop.demand is None or stop.demand < 0:
                raise InvalidRequest(f"Stop {stop.order_id} has negative demand: {stop.demand}")
            if stop.service_time is None or stop.service_time < 0:
                raise InvalidRequest(f"Stop {stop.order_id} has negative service time: {stop.service_time}")

            window = stop.time_window
            if window and window.earliest is not None and window.latest is not None:
                if window.earliest > window.latest:
                    raise InvalidRequest(
                        f"Stop {stop.order_id} has invalid time window: {window.earliest} > {window.latest}"
                    )

        self.constraints.validate()


@dataclass(frozen=True)
class ScheduledStop:
    """A stop as visited on a route."""
    stop: Stop
    sequence: int
    estimated_arrival: float  # service start, minutes from midnight
    wait_minutes: float
    departure: float
    leg_distance: float  # km from the previous position
    cumulative_distance: float  # km from the depot

    @property
    def order_id(self) -> str:
        return self.stop.order_id


@dataclass(frozen=True)
class Route:
    """Result of a successful optimization."""
    driver_id: Optional[str]
    depot: Depot
    stops: Tuple[ScheduledStop, ...]
    total_distance: float
    total_duration: float
    departure_time: float
    return_distance: float = 0.0
    truncated: bool = False
    truncation_reason: Optional[str] = None
    improvement_iterations: int = 0
    construction_distance: float = 0.0

    @property
    def order_ids(self) -> List[str]:
        return [scheduled.order_id for scheduled in self.stops]


@dataclass(frozen=True)
class OptimizationError:
    """Tagged failure returned instead of raising across the boundary."""
    kind: ErrorKind
    message: str

    @staticmethod
    def from_exception(exc: RouteOptimizationError) -> 'OptimizationError':
        return OptimizationError(kind=exc.kind, message=exc.message)

    def to_dict(self) -> Dict[str, str]:
        return {'kind': self.kind.value, 'message': self.message}


OptimizationOutcome = Union[Route, OptimizationError]
