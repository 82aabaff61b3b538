import os
import sys
import logging

from delivery_routing.core.constants import (
    DEFAULT_AVERAGE_SPEED_KMH,
    DEFAULT_MAX_IMPROVEMENT_ITERATIONS,
)
from delivery_routing.utils.env_loader import load_env_from_file

logger = logging.getLogger(__name__)

# Try different possible locations for the env file
env_paths = [
    os.path.join(os.path.dirname(__file__), 'env_var.env'),  # App directory
    os.path.join(os.path.dirname(os.path.dirname(__file__)), 'env_var.env'),  # Root directory
]

for path in env_paths:
    if load_env_from_file(path):
        break

# Determine if we're in test mode
TESTING = 'test' in sys.argv or 'pytest' in sys.modules


def _float_setting(name, default=None):
    value = os.getenv(name)
    if value in (None, ''):
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric value for {name}: {value!r}")
        return default


# Order store (orders are resolved to stops through its REST API)
ORDER_SERVICE_URL = os.getenv('ORDER_SERVICE_URL', 'http://localhost:5000').rstrip('/')
ORDER_SERVICE_API_TOKEN = os.getenv('ORDER_SERVICE_API_TOKEN')
ORDER_SERVICE_TIMEOUT_SECONDS = _float_setting('ORDER_SERVICE_TIMEOUT_SECONDS', 10.0)

# API request settings
MAX_RETRIES = 1 if TESTING else 3
BACKOFF_FACTOR = 2  # Exponential backoff
RETRY_DELAY_SECONDS = 0 if TESTING else 1

# Driver notifications
KAFKA_BROKER_URL = os.getenv('KAFKA_BROKER_URL', 'localhost:9092')
ROUTE_ASSIGNED_TOPIC = os.getenv('ROUTE_ASSIGNED_TOPIC', 'routes.assigned')
KAFKA_FLUSH_TIMEOUT_SECONDS = 5.0

# Optimization defaults
AVERAGE_SPEED_KMH = _float_setting('ROUTING_AVERAGE_SPEED_KMH', DEFAULT_AVERAGE_SPEED_KMH)
DEFAULT_SERVICE_TIME_MINUTES = _float_setting('ROUTING_DEFAULT_SERVICE_TIME_MINUTES', 4.0)
DEFAULT_DEPARTURE_TIME = os.getenv('ROUTING_DEFAULT_DEPARTURE_TIME', '08:00')
MAX_IMPROVEMENT_ITERATIONS = int(
    _float_setting('ROUTING_MAX_IMPROVEMENT_ITERATIONS', DEFAULT_MAX_IMPROVEMENT_ITERATIONS)
)
OPTIMIZATION_TIME_LIMIT_SECONDS = _float_setting('ROUTING_TIME_LIMIT_SECONDS')

# Orders in these states can no longer be put on a route
UNROUTABLE_ORDER_STATUSES = ('delivered', 'cancelled')
