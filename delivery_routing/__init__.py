"""
Delivery Routing Module.

This module plans single-driver delivery routes: it resolves order ids to
stops, orders them with a nearest-neighbour construction followed by local
improvement, and estimates arrival times at each stop.
"""

__version__ = '0.1.0'
