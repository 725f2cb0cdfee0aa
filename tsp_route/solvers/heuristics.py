from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from .base import Mode, Point, SolveResult, Solver, Tour, distance_matrix, tour_length


def _size(dist_mat) -> int:
    n = len(dist_mat)
    if n == 0:
        raise ValueError("Cannot build a tour over an empty point collection.")
    return n


def _nearest_unvisited(dist_mat, current: int, visited, skip: Optional[int] = None) -> int:
    # Ascending scan with strict improvement: ties go to the lowest index,
    # including a tie at inf when every distance overflows.
    best = -1
    best_dist = float("inf")
    for i in range(len(visited)):
        if visited[i] or i == skip:
            continue
        d = dist_mat[current, i]
        if best < 0 or d < best_dist:
            best_dist = d
            best = i
    return best


def nearest_neighbor_cycle(dist_mat, start: int = 0) -> Tour:
    n = _size(dist_mat)
    visited = np.zeros(n, dtype=bool)
    visited[start] = True
    tour = [start]
    current = start
    for _ in range(n - 1):
        nxt = _nearest_unvisited(dist_mat, current, visited)
        visited[nxt] = True
        tour.append(nxt)
        current = nxt
    tour.append(start)
    return tour


def nearest_neighbor_path(dist_mat, start: int = 0, end: Optional[int] = None) -> Tour:
    n = _size(dist_mat)
    if end is None:
        end = n - 1
    if end == start:
        return [start]
    visited = np.zeros(n, dtype=bool)
    visited[start] = True
    tour = [start]
    current = start
    for _ in range(n - 2):
        nxt = _nearest_unvisited(dist_mat, current, visited, skip=end)
        visited[nxt] = True
        tour.append(nxt)
        current = nxt
    tour.append(end)
    return tour


def _two_opt_pass(dist_mat, tour: Tour, i_stop: int, j_stop: int) -> int:
    exchanges = 0
    for i in range(1, i_stop):
        for j in range(i + 1, j_stop):
            a = tour[i - 1]
            b = tour[i]
            c = tour[j]
            d = tour[j + 1]
            before = dist_mat[a, b] + dist_mat[c, d]
            after = dist_mat[a, c] + dist_mat[b, d]
            if after < before:
                tour[i : j + 1] = tour[i : j + 1][::-1]
                exchanges += 1
    return exchanges


def _two_opt(dist_mat, tour: Tour, i_stop: int, j_stop: int, max_passes: Optional[int]) -> int:
    total = 0
    passes = 0
    while max_passes is None or passes < max_passes:
        passes += 1
        exchanges = _two_opt_pass(dist_mat, tour, i_stop, j_stop)
        total += exchanges
        if not exchanges:
            break
    return total


def two_opt_cycle(dist_mat, tour: Tour, max_passes: Optional[int] = None) -> int:
    """
    First-improvement 2-opt over a closed tour (start repeated at the end).

    Mutates ``tour`` in place and returns the number of exchanges applied.
    The duplicated start anchors both ends of the list, so neither end moves.
    """
    n = len(tour) - 1
    if n < 3:
        return 0
    return _two_opt(dist_mat, tour, n - 1, n, max_passes)


def two_opt_path(dist_mat, tour: Tour, max_passes: Optional[int] = None) -> int:
    """
    First-improvement 2-opt over an open tour with fixed first and last positions.

    Mutates ``tour`` in place and returns the number of exchanges applied.
    """
    n = len(tour)
    if n < 4:
        return 0
    # Inclusive i <= n-3, j <= n-2: the last interior point can move, the end cannot.
    return _two_opt(dist_mat, tour, n - 2, n - 1, max_passes)


CONSTRUCTORS = {
    Mode.CYCLE: nearest_neighbor_cycle,
    Mode.PATH: nearest_neighbor_path,
}

IMPROVERS = {
    Mode.CYCLE: two_opt_cycle,
    Mode.PATH: two_opt_path,
}


@dataclass
class RouteConfig:
    improve: bool = True
    max_passes: Optional[int] = None


class RouteSolver(Solver):
    """
    Nearest-neighbor construction followed by 2-opt, for one endpoint mode.

    Index 0 is always the start. In path mode the last index is the end.
    """

    name = "route"

    def __init__(self, mode: Union[Mode, str] = Mode.CYCLE, config: Optional[RouteConfig] = None):
        self.mode = Mode(mode)
        self.config = config or RouteConfig()
        self.dist_mat = None  # set externally when a precomputed matrix is available

    def _matrix(self, points: Sequence[Point]):
        if self.dist_mat is not None:
            return self.dist_mat
        return distance_matrix(points)

    def run(self, points: Sequence[Point], optimum: Optional[float] = None) -> SolveResult:
        dist_mat = self._matrix(points)
        tour = CONSTRUCTORS[self.mode](dist_mat)
        initial = tour_length(dist_mat, tour)
        exchanges = 0
        if self.config.improve:
            exchanges = IMPROVERS[self.mode](dist_mat, tour, max_passes=self.config.max_passes)
        return SolveResult(
            tour=tour,
            length=tour_length(dist_mat, tour),
            solver_name=f"{self.name}:{self.mode.value}",
            optimum=optimum,
            initial_length=initial,
            exchanges=exchanges,
        )

    def solve(self, points: Sequence[Point]) -> Tour:
        return self.run(points).tour


def compute_route(points: Sequence[Point], mode: Union[Mode, str] = Mode.CYCLE) -> Tour:
    try:
        mode = Mode(mode)
    except ValueError:
        raise ValueError(f"Unknown route mode: {mode!r}") from None
    return RouteSolver(mode).solve(points)
