"""
Nearest-neighbor + 2-opt route ordering for itinerary stops, with TSPLIB benchmarking.
"""

from .solvers import Mode, Point, compute_route

__all__ = [
    "Mode",
    "Point",
    "compute_route",
    "data",
    "evaluation",
    "itinerary",
]
