"""
Helper functions for the delivery routing module.

This module provides formatting and conversion utilities used across the app.
"""
import logging
from typing import Any, Iterable, Optional
import dataclasses
import datetime
import enum
import json

import numpy as np

# Set up logging
logger = logging.getLogger(__name__)


def convert_minutes_to_time_str(minutes_from_midnight: float) -> str:
    """
    Convert minutes from midnight to a time string (HH:MM).

    Fractional minutes are rounded to the nearest minute; values past
    midnight keep counting hours (1500 -> "25:00").

    Args:
        minutes_from_midnight: Minutes from midnight.

    Returns:
        Time string in HH:MM format.
    """
    hours, minutes = divmod(int(round(minutes_from_midnight)), 60)
    return f"{hours:02d}:{minutes:02d}"


def convert_time_str_to_minutes(time_str: str) -> Optional[int]:
    """
    Convert a time string (HH:MM) to minutes from midnight.

    Args:
        time_str: Time string in HH:MM format.

    Returns:
        Minutes from midnight, or None if the string is not HH:MM.
    """
    try:
        if not isinstance(time_str, str):
            raise TypeError("Input must be a string.")

        parts = time_str.split(':')
        if len(parts) != 2 or len(parts[0]) != 2 or len(parts[1]) != 2:
            raise ValueError("Input string does not conform to HH:MM format.")

        hours, minutes = map(int, parts)
        if hours < 0 or not 0 <= minutes < 60:
            raise ValueError("Minutes out of range.")
        return hours * 60 + minutes
    except (ValueError, TypeError):
        logger.error(f"Invalid time string format: {time_str}")
        return None


def format_route_for_display(order_ids: Iterable[str], depot_label: str = 'Depot') -> str:
    """
    Format a route for display, starting at the depot.

    Args:
        order_ids: Order ids in visiting order.
        depot_label: Label used for the depot.

    Returns:
        Formatted route string, e.g. "Depot → 3 → 1 → 2".
    """
    return " → ".join([depot_label] + [str(order_id) for order_id in order_ids])


def format_duration(minutes: float) -> str:
    """
    Format a duration given in minutes as a human-readable string.

    Args:
        minutes: Duration in minutes.

    Returns:
        Human-readable duration string, e.g. "1h 5m" or "0m".
    """
    total_minutes = int(round(minutes))
    hours, remainder = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {remainder}m"
    return f"{remainder}m"


def safe_json_dumps(obj: Any, **kwargs) -> str:
    """
    Safely convert an object to a JSON string, handling non-serializable types.

    Args:
        obj: Object to convert to JSON.

    Returns:
        JSON string representation of the object.
    """
    def handle_non_serializable(o):
        if isinstance(o, (datetime.datetime, datetime.date)):
            return o.isoformat()
        if isinstance(o, enum.Enum):
            return o.value
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        if hasattr(o, '__dict__'):
            return o.__dict__
        return str(o)

    return json.dumps(obj, default=handle_non_serializable, **kwargs)
