"""
Constants used by the route optimizer.
"""

# Mean Earth radius used by the haversine cost model
EARTH_RADIUS_KM = 6371.0

# Coordinate bounds (WGS84, decimal degrees)
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0

# Travel assumptions
DEFAULT_AVERAGE_SPEED_KMH = 30.0
DEFAULT_DEPARTURE_MINUTES = 8 * 60  # 08:00
DEFAULT_STOP_DEMAND = 1.0
DEFAULT_STOP_SERVICE_MINUTES = 0.0

# Local search budget
DEFAULT_MAX_IMPROVEMENT_ITERATIONS = 1000

# Costs closer than this (km) are treated as equal
COST_EPSILON = 1e-9
# Schedule times (minutes) closer than this are treated as equal
TIME_EPSILON = 1e-9

# Reasons a route can be returned before local search converged
TRUNCATED_ITERATION_LIMIT = 'iteration_limit'
TRUNCATED_TIME_LIMIT = 'time_limit'
TRUNCATED_CANCELLED = 'cancelled'
