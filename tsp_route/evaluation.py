import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import networkx as nx
import numpy as np
import torch

from .data import Instance
from .solvers.base import Mode, Point, distance_matrix
from .solvers.heuristics import RouteSolver


@dataclass
class BenchConfig:
    mode: Mode = Mode.CYCLE
    max_runtime: float = 5.0
    runtime_weight: float = 0.1
    reference: bool = False


@dataclass
class RouteFitness:
    length: float
    initial_length: float
    exchanges: int
    runtime: float
    gap: float
    score: float
    solver_name: str
    reference: Optional[float] = None

    @property
    def improvement(self) -> float:
        if self.initial_length == 0.0:
            return 0.0
        return (self.initial_length - self.length) / self.initial_length


def torch_distance_matrix(points: Sequence[Point], device: Optional[torch.device] = None) -> torch.Tensor:
    coords = torch.tensor(
        [(p.lat, p.lng) for p in points], dtype=torch.float64, device=device
    ).reshape(-1, 2)
    diff = coords[:, None, :] - coords[None, :, :]
    # Same operation order as the numpy matrix, so entries agree bit for bit.
    return torch.sqrt(diff[..., 0] * diff[..., 0] + diff[..., 1] * diff[..., 1])


def complete_graph(points: Sequence[Point], dist_mat=None) -> nx.Graph:
    if dist_mat is None:
        dist_mat = distance_matrix(points)
    graph = nx.Graph()
    n = len(points)
    graph.add_nodes_from(range(n))
    for a in range(n):
        for b in range(a + 1, n):
            graph.add_edge(a, b, weight=float(dist_mat[a, b]))
    return graph


def reference_length(points: Sequence[Point], dist_mat=None) -> Optional[float]:
    """Christofides closed-tour length from networkx, as a quality yardstick."""
    if len(points) < 3:
        return None
    graph = complete_graph(points, dist_mat)
    cycle = nx.approximation.christofides(graph, weight="weight")
    return float(sum(graph[a][b]["weight"] for a, b in zip(cycle, cycle[1:])))


def evaluate_solver(
    solver: RouteSolver,
    instance: Instance,
    max_runtime: float = 5.0,
    runtime_weight: float = 0.1,
    dist_mat: Optional[np.ndarray] = None,
    reference: bool = False,
) -> RouteFitness:
    solver.dist_mat = dist_mat
    start = time.perf_counter()
    result = solver.run(instance.points, optimum=instance.optimum)
    runtime = time.perf_counter() - start
    ref = reference_length(instance.points, dist_mat) if reference else None
    if runtime > max_runtime:
        # Penalize slow runs heavily.
        return RouteFitness(
            length=result.length,
            initial_length=result.initial_length,
            exchanges=result.exchanges,
            runtime=runtime,
            gap=float("inf"),
            score=float("inf"),
            solver_name=result.solver_name,
            reference=ref,
        )
    gap = result.gap
    score = result.length + runtime_weight * result.length * runtime
    return RouteFitness(
        length=result.length,
        initial_length=result.initial_length,
        exchanges=result.exchanges,
        runtime=runtime,
        gap=gap,
        score=score,
        solver_name=result.solver_name,
        reference=ref,
    )


def aggregate_fitness(fitnesses: List[RouteFitness]) -> Dict[str, float]:
    if not fitnesses:
        return {"score": float("inf"), "gap": float("inf"), "runtime": float("inf"), "improvement": 0.0}
    score = sum(f.score for f in fitnesses) / len(fitnesses)
    gap = sum(f.gap for f in fitnesses if f.gap != float("inf")) / max(
        1, sum(1 for f in fitnesses if f.gap != float("inf"))
    )
    runtime = sum(f.runtime for f in fitnesses) / len(fitnesses)
    improvement = sum(f.improvement for f in fitnesses) / len(fitnesses)
    return {"score": score, "gap": gap, "runtime": runtime, "improvement": improvement}
