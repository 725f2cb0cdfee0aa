import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np


Tour = List[int]


@dataclass(frozen=True)
class Point:
    lat: float
    lng: float
    id: Optional[str] = None


class Mode(str, Enum):
    CYCLE = "cycle"
    PATH = "path"


def dist(a: Point, b: Point) -> float:
    # Planar approximation; lat/lng are treated as Cartesian coordinates.
    dx = a.lat - b.lat
    dy = a.lng - b.lng
    return math.sqrt(dx * dx + dy * dy)


def distance_matrix(points: Sequence[Point]) -> np.ndarray:
    coords = np.array([(p.lat, p.lng) for p in points], dtype=np.float64).reshape(-1, 2)
    diff = coords[:, None, :] - coords[None, :, :]
    return np.sqrt(diff[..., 0] * diff[..., 0] + diff[..., 1] * diff[..., 1])


def tour_length(dist_mat, tour: Sequence[int]) -> float:
    total = 0.0
    for i in range(len(tour) - 1):
        total += dist_mat[tour[i], tour[i + 1]]
    return float(total)


class Solver(ABC):
    name: str = "base"

    @abstractmethod
    def solve(self, points: Sequence[Point]) -> Tour:
        raise NotImplementedError


@dataclass
class SolveResult:
    tour: Tour
    length: float
    solver_name: str
    optimum: Optional[float] = None
    initial_length: Optional[float] = None
    exchanges: int = 0

    @property
    def gap(self) -> float:
        if self.optimum is None or math.isclose(self.optimum, 0.0):
            return float("inf")
        return (self.length - self.optimum) / self.optimum
