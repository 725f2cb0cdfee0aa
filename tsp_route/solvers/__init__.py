from .base import Mode, Point, Solver, SolveResult, Tour, dist, distance_matrix, tour_length
from .heuristics import (
    RouteConfig,
    RouteSolver,
    compute_route,
    nearest_neighbor_cycle,
    nearest_neighbor_path,
    two_opt_cycle,
    two_opt_path,
)

__all__ = [
    "Mode",
    "Point",
    "Solver",
    "SolveResult",
    "Tour",
    "dist",
    "distance_matrix",
    "tour_length",
    "RouteConfig",
    "RouteSolver",
    "compute_route",
    "nearest_neighbor_cycle",
    "nearest_neighbor_path",
    "two_opt_cycle",
    "two_opt_path",
]
