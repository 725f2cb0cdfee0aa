import random

import pytest

from tsp_route.solvers import (
    Mode,
    Point,
    RouteConfig,
    RouteSolver,
    compute_route,
    distance_matrix,
    nearest_neighbor_cycle,
    nearest_neighbor_path,
    tour_length,
    two_opt_cycle,
    two_opt_path,
)
from tsp_route.solvers.base import dist as point_dist


def random_points(n, seed):
    rng = random.Random(seed)
    return [Point(rng.uniform(0, 100), rng.uniform(0, 100), f"p{i}") for i in range(n)]


@pytest.fixture
def square():
    return [Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1)]


def test_nearest_neighbor_cycle_ties_go_to_lowest_index(square):
    # (1, 0) and (0, 1) are both at distance 1 from the start.
    assert nearest_neighbor_cycle(distance_matrix(square)) == [0, 1, 2, 3, 0]


def test_nearest_neighbor_path_keeps_end_for_last():
    points = [Point(0, 0), Point(0.5, 0), Point(5, 0), Point(1, 0)]
    # The end (index 3) is closer to the start than index 2 but must come last.
    assert nearest_neighbor_path(distance_matrix(points)) == [0, 1, 2, 3]


def test_nearest_neighbor_single_point():
    dist = distance_matrix([Point(3, 4)])
    assert nearest_neighbor_cycle(dist) == [0, 0]
    assert nearest_neighbor_path(dist) == [0]


def test_nearest_neighbor_rejects_empty_input():
    with pytest.raises(ValueError):
        nearest_neighbor_cycle(distance_matrix([]))
    with pytest.raises(ValueError):
        compute_route([], Mode.PATH)


def test_two_opt_cycle_removes_crossing():
    points = [Point(0, 0), Point(1, 1), Point(1, 0), Point(0, 1)]
    dist = distance_matrix(points)
    tour = [0, 1, 2, 3, 0]
    exchanges = two_opt_cycle(dist, tour)
    assert exchanges > 0
    assert tour[0] == tour[-1] == 0
    assert tour_length(dist, tour) == pytest.approx(4.0)


def test_two_opt_path_keeps_endpoints_fixed():
    points = [Point(0, 0), Point(2, 1), Point(1, -1), Point(1, 1), Point(2, -1), Point(3, 0)]
    dist = distance_matrix(points)
    tour = [0, 1, 2, 3, 4, 5]
    before = tour_length(dist, tour)
    two_opt_path(dist, tour)
    assert tour[0] == 0
    assert tour[-1] == 5
    assert sorted(tour) == list(range(6))
    assert tour_length(dist, tour) < before


def test_two_opt_path_can_move_last_interior_point():
    points = [Point(0, 0), Point(2, 0), Point(1, 0), Point(3, 0)]
    dist = distance_matrix(points)
    tour = [0, 1, 2, 3]
    assert two_opt_path(dist, tour) == 1
    assert tour == [0, 2, 1, 3]


@pytest.mark.parametrize("tour", [[0, 0], [0, 1, 0]])
def test_two_opt_cycle_short_tours_are_no_ops(tour):
    dist = distance_matrix([Point(0, 0), Point(1, 0)])
    original = list(tour)
    assert two_opt_cycle(dist, tour) == 0
    assert tour == original


@pytest.mark.parametrize("tour", [[0], [0, 1], [0, 1, 2]])
def test_two_opt_path_short_tours_are_no_ops(tour):
    dist = distance_matrix([Point(0, 0), Point(1, 0), Point(2, 0)])
    original = list(tour)
    assert two_opt_path(dist, tour) == 0
    assert tour == original


def test_two_opt_max_passes_caps_work():
    points = random_points(40, seed=3)
    dist = distance_matrix(points)
    capped = nearest_neighbor_cycle(dist)
    full = list(capped)
    two_opt_cycle(dist, capped, max_passes=1)
    two_opt_cycle(dist, full)
    assert tour_length(dist, full) <= tour_length(dist, capped) + 1e-9


def test_route_solver_reports_construction_and_result():
    points = random_points(30, seed=11)
    result = RouteSolver(Mode.CYCLE).run(points, optimum=1.0)
    assert result.solver_name == "route:cycle"
    assert result.length <= result.initial_length
    assert result.gap == pytest.approx(result.length - 1.0)


def test_route_solver_without_improvement_returns_nearest_neighbor_tour():
    points = random_points(25, seed=5)
    solver = RouteSolver("path", RouteConfig(improve=False))
    result = solver.run(points)
    assert result.exchanges == 0
    assert result.tour == nearest_neighbor_path(distance_matrix(points))


def test_route_solver_uses_precomputed_matrix():
    points = random_points(12, seed=2)
    solver = RouteSolver(Mode.CYCLE)
    solver.dist_mat = distance_matrix(points)
    assert solver.solve(points) == compute_route(points, Mode.CYCLE)


def test_compute_route_rejects_unknown_mode(square):
    with pytest.raises(ValueError):
        compute_route(square, "loop")


def test_distance_matrix_matches_scalar_metric():
    points = random_points(10, seed=7)
    mat = distance_matrix(points)
    for a in range(len(points)):
        for b in range(len(points)):
            assert mat[a, b] == point_dist(points[a], points[b])
    assert point_dist(Point(0, 0), Point(3, 4)) == 5.0


def test_overflowing_distances_tie_to_lowest_index():
    points = [Point(0, 0), Point(1e200, 0), Point(-1e200, 0)]
    assert compute_route(points, Mode.CYCLE) == [0, 1, 2, 0]
    assert compute_route(points + [Point(5, 0)], Mode.PATH) == [0, 1, 2, 3]
