"""
Points, distances and the epsilon-neighbor cache shared by the engines.
"""

import math
from dataclasses import dataclass

import numpy as np

NOISE = -1


# =============================================================================
# Data structures
# =============================================================================

@dataclass(frozen=True)
class Point:
    x: float
    y: float
    cluster_id: int | None = None   # None unclassified, -1 noise, >= 1 cluster
    visited: bool = False

    @property
    def is_noise(self) -> bool:
        return self.cluster_id == NOISE


Dataset = tuple[Point, ...]


@dataclass(frozen=True)
class ViewTransform:
    """Pan/zoom of the drawing surface: ``screen = data * k + (x, y)``."""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, px: float, py: float) -> tuple[float, float]:
        return px * self.k + self.x, py * self.k + self.y

    def invert(self, sx: float, sy: float) -> tuple[float, float]:
        return (sx - self.x) / self.k, (sy - self.y) / self.k

    def panned(self, dx: float, dy: float) -> "ViewTransform":
        return ViewTransform(self.x + dx, self.y + dy, self.k)

    def zoomed(self, factor: float, sx: float, sy: float) -> "ViewTransform":
        """Zoom by ``factor`` keeping the screen position ``(sx, sy)`` fixed."""
        k = self.k * factor
        px, py = self.invert(sx, sy)
        return ViewTransform(sx - px * k, sy - py * k, k)


# =============================================================================
# Distances
# =============================================================================

def euclidean_distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def coordinates(dataset) -> np.ndarray:
    """(n, 2) float array of the dataset's coordinates."""
    if not dataset:
        return np.empty((0, 2), dtype=float)
    return np.array([(p.x, p.y) for p in dataset], dtype=float)


def pairwise_distances(coords: np.ndarray) -> np.ndarray:
    return np.linalg.norm(coords[:, None] - coords[None, :], axis=2)


def region_query(dataset, index: int, epsilon: float) -> list[int]:
    """
    Indices of all points strictly closer than ``epsilon`` to ``dataset[index]``.

    The query point is part of its own neighborhood (distance 0). Indices come
    back in dataset order.
    """
    center = dataset[index]
    return [i for i, q in enumerate(dataset) if euclidean_distance(center, q) < epsilon]


class NeighborIndex:
    """
    Precomputed ``distance < epsilon`` matrix for one set of coordinates.

    Cluster labels do not matter here, only positions, so the same index
    serves every snapshot of a run until points are added or epsilon changes.
    """

    def __init__(self, coords: np.ndarray, epsilon: float):
        self.coords = coords
        self.epsilon = epsilon
        self.matrix = pairwise_distances(coords) < epsilon

    @classmethod
    def build(cls, dataset, epsilon: float) -> "NeighborIndex":
        return cls(coordinates(dataset), epsilon)

    def __len__(self):
        return len(self.coords)

    def matches(self, dataset, epsilon: float) -> bool:
        if epsilon != self.epsilon or len(dataset) != len(self.coords):
            return False
        return np.array_equal(coordinates(dataset), self.coords)

    def neighbors(self, index: int) -> list[int]:
        return np.flatnonzero(self.matrix[index]).tolist()
