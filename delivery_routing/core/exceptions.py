"""
Error taxonomy for route optimization.

Failures are raised internally as ``RouteOptimizationError`` subclasses and
converted to ``OptimizationError`` values at the optimizer and service
boundaries, so callers only ever see tagged results.
"""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_REQUEST = 'invalid_request'
    CONSTRAINT_VIOLATION = 'constraint_violation'
    CAPACITY_EXCEEDED = 'capacity_exceeded'
    TIMEOUT = 'timeout'
    ORDER_STORE_UNAVAILABLE = 'order_store_unavailable'


class RouteOptimizationError(Exception):
    """Base class for failures that are reported as tagged results."""
    kind = ErrorKind.INVALID_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(RouteOptimizationError):
    """Malformed or unresolvable input. Not retryable without fixing it."""
    kind = ErrorKind.INVALID_REQUEST


class ConstraintViolation(RouteOptimizationError):
    """Remaining stops cannot be reached within their time windows or the duration limit."""
    kind = ErrorKind.CONSTRAINT_VIOLATION


class CapacityExceeded(RouteOptimizationError):
    """Demand does not fit the configured vehicle capacity."""
    kind = ErrorKind.CAPACITY_EXCEEDED


class OptimizationTimeout(RouteOptimizationError):
    """The wall-clock budget ran out (or the call was cancelled) before any route existed."""
    kind = ErrorKind.TIMEOUT


class OrderStoreUnavailable(RouteOptimizationError):
    """The order store could not be reached after retries."""
    kind = ErrorKind.ORDER_STORE_UNAVAILABLE
