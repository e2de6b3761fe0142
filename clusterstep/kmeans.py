"""
K-Means as assignment + update rounds, one round per step.

Centroids start uniformly at random inside the coordinate domain rather than
on data points. There is no convergence check: once assignments stop
changing, further steps leave everything as it is.
"""

import logging
from dataclasses import dataclass, replace

import numpy as np

from clusterstep import config
from clusterstep.config import validate_dataset, validate_k
from clusterstep.geometry import coordinates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KMeansState:
    centroids: tuple[tuple[float, float], ...]
    iteration: int = 0


def initialize(dataset, k: int, rng=None, bounds=(config.DOMAIN_WIDTH, config.DOMAIN_HEIGHT)):
    """Unclassify every point and drop ``k`` centroids uniformly inside ``bounds``."""
    rng = rng if rng is not None else np.random.default_rng()
    width, height = bounds
    centroids = tuple((float(x), float(y))
                      for x, y in zip(rng.uniform(0, width, k), rng.uniform(0, height, k)))
    fresh = tuple(replace(p, cluster_id=None, visited=False) for p in dataset)
    return fresh, KMeansState(centroids)


def assign(coords: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """0-based index of the nearest centroid for every row; ties go to the lowest index."""
    dists = np.linalg.norm(coords[:, None] - centroids[None, :], axis=2)
    return np.argmin(dists, axis=1)


def step(dataset, state: KMeansState):
    """
    One assignment + update round.

    Centroid ``i`` owns ``cluster_id == i + 1``. A centroid that wins no
    points keeps its previous position.
    """
    old = np.array(state.centroids, dtype=float)
    if not dataset:
        return tuple(dataset), replace(state, iteration=state.iteration + 1)

    coords = coordinates(dataset)
    labels = assign(coords, old)
    points = tuple(replace(p, cluster_id=int(label) + 1) for p, label in zip(dataset, labels))

    centroids = []
    for i, previous in enumerate(state.centroids):
        members = coords[labels == i]
        if len(members) == 0:
            centroids.append(previous)
        else:
            mx, my = members.mean(axis=0)
            centroids.append((float(mx), float(my)))

    logger.debug("K-Means iteration %d, cluster sizes %s",
                 state.iteration + 1, np.bincount(labels, minlength=len(old)).tolist())
    return points, KMeansState(tuple(centroids), state.iteration + 1)


class KMeansEngine:
    """Configured K-Means engine used by the run controller."""

    def __init__(self, k: int, rng=None):
        self.k = validate_k(k)
        self.rng = rng

    def initialize(self, dataset):
        validate_dataset(dataset)
        return initialize(dataset, self.k, self.rng)

    def step(self, dataset, state):
        return step(dataset, state)

    def is_done(self, state) -> bool:
        return False

    def points_added(self, state, first_new: int):
        # new points get labelled by the next assignment round
        return state

    def focus(self, state):
        return None

    def clusters_found(self, state) -> int:
        return len(state.centroids)
