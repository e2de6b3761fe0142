"""
DBSCAN as a resumable state machine.

Each call to :func:`step` performs exactly one phase transition and returns
fresh ``(dataset, state)`` values, so a caller can pause, resume, rewind or
redraw between any two steps without re-running earlier work.

Phases
======
* ``FIND_UNVISITED`` — scan forward from the cursor for the next unvisited
  point and make it the focus. No labelling happens in this step.
* ``CHECK_NEIGHBORS`` — visit the focus point. Too few neighbours → noise;
  otherwise it opens a new cluster and its neighbours are queued.
* ``EXPAND_CLUSTER`` — pop one queued point (FIFO). If it is itself a core
  point, its unlabelled / noise neighbours join the cluster and the
  unvisited ones are queued. An empty queue sends the scan onward.
* ``DONE`` — every point has been visited.

Neighbourhoods use a strict ``distance < epsilon`` and include the point
itself.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum

from clusterstep.config import validate_dataset, validate_epsilon, validate_min_points
from clusterstep.geometry import NOISE, NeighborIndex, Point

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    FIND_UNVISITED = "find_unvisited"
    CHECK_NEIGHBORS = "check_neighbors"
    EXPAND_CLUSTER = "expand_cluster"
    DONE = "done"


@dataclass(frozen=True)
class DBSCANState:
    cursor: int = 0
    cluster_counter: int = 0
    queue: tuple[int, ...] = ()
    phase: Phase = Phase.FIND_UNVISITED
    focus: int | None = None


def _claimable(p: Point) -> bool:
    return p.cluster_id is None or p.cluster_id == NOISE


def initialize(dataset):
    """Reset every point to unclassified/unvisited and return a fresh state."""
    fresh = tuple(replace(p, cluster_id=None, visited=False) for p in dataset)
    return fresh, DBSCANState()


def is_done(state: DBSCANState) -> bool:
    return state.phase == Phase.DONE


def resume(state: DBSCANState, first_new: int) -> DBSCANState:
    """
    Reopen a finished pass after points were appended from ``first_new`` on.

    The scan continues at the first new point and cluster numbering carries
    on from where it stopped. Unfinished states come back unchanged.
    """
    if state.phase != Phase.DONE:
        return state
    logger.debug("Resuming finished pass at point %d", first_new)
    return replace(state, cursor=first_new, focus=None, phase=Phase.FIND_UNVISITED)


def step(dataset, state: DBSCANState, epsilon: float, min_points: int, index=None):
    """
    Advance the pass by one phase transition.

    ``index`` is an optional :class:`NeighborIndex` built for this dataset's
    coordinates and ``epsilon``; one is built on the fly when omitted. Neither
    ``dataset`` nor ``state`` is modified.
    """
    if state.phase == Phase.DONE:
        return tuple(dataset), state
    if index is None:
        index = NeighborIndex.build(dataset, epsilon)

    points = list(dataset)
    if state.phase == Phase.FIND_UNVISITED:
        state = _find_unvisited(points, state)
    elif state.phase == Phase.CHECK_NEIGHBORS:
        state = _check_neighbors(points, state, min_points, index)
    else:
        state = _expand_cluster(points, state, min_points, index)
    return tuple(points), state


def _find_unvisited(points, state):
    for i in range(state.cursor, len(points)):
        if not points[i].visited:
            logger.debug("Focus on point %d", i)
            return replace(state, cursor=i, focus=i, phase=Phase.CHECK_NEIGHBORS)
    logger.debug("No unvisited points left; %d clusters", state.cluster_counter)
    return replace(state, cursor=len(points), focus=None, phase=Phase.DONE)


def _check_neighbors(points, state, min_points, index):
    i = state.cursor
    neighbors = index.neighbors(i)

    if len(neighbors) < min_points:
        points[i] = replace(points[i], visited=True, cluster_id=NOISE)
        logger.debug("Point %d has %d neighbours -> noise", i, len(neighbors))
        return replace(state, cursor=i + 1, phase=Phase.FIND_UNVISITED)

    cluster_id = state.cluster_counter + 1
    points[i] = replace(points[i], visited=True, cluster_id=cluster_id)
    queue = []
    for n in neighbors:
        if _claimable(points[n]):
            points[n] = replace(points[n], cluster_id=cluster_id)
        if not points[n].visited:
            queue.append(n)
    logger.debug("Point %d is core -> cluster %d, %d queued", i, cluster_id, len(queue))
    return replace(state, cluster_counter=cluster_id, queue=tuple(queue),
                   phase=Phase.EXPAND_CLUSTER)


def _expand_cluster(points, state, min_points, index):
    if not state.queue:
        return replace(state, cursor=state.cursor + 1, focus=None, phase=Phase.FIND_UNVISITED)

    j, rest = state.queue[0], state.queue[1:]
    cluster_id = state.cluster_counter
    state = replace(state, queue=rest, focus=j)

    if points[j].visited:
        if _claimable(points[j]):
            points[j] = replace(points[j], cluster_id=cluster_id)
        return state

    points[j] = replace(points[j], visited=True)
    if _claimable(points[j]):
        points[j] = replace(points[j], cluster_id=cluster_id)
    neighbors = index.neighbors(j)
    if len(neighbors) < min_points:
        logger.debug("Point %d is a border point of cluster %d", j, cluster_id)
        return state

    queued = set(rest)
    added = []
    for n in neighbors:
        if not _claimable(points[n]):
            continue
        points[n] = replace(points[n], cluster_id=cluster_id)
        if not points[n].visited and n not in queued:
            queued.add(n)
            added.append(n)
    logger.debug("Point %d is core; cluster %d grows by %d", j, cluster_id, len(added))
    return replace(state, queue=rest + tuple(added))


def run_to_completion(dataset, epsilon: float, min_points: int):
    """Initialize and step until done; returns the final ``(dataset, state)``."""
    dataset, state = initialize(dataset)
    index = NeighborIndex.build(dataset, epsilon)
    while not is_done(state):
        dataset, state = step(dataset, state, epsilon, min_points, index)
    return dataset, state


class DBSCANEngine:
    """
    Configured DBSCAN engine used by the run controller.

    Parameters are validated here, and the neighbor matrix is cached until the
    dataset's coordinates change (e.g. after brushing in new points).
    """

    def __init__(self, epsilon: float, min_points: int):
        self.epsilon = validate_epsilon(epsilon)
        self.min_points = validate_min_points(min_points)
        self._index: NeighborIndex | None = None

    def neighbor_index(self, dataset) -> NeighborIndex:
        if self._index is None or not self._index.matches(dataset, self.epsilon):
            logger.debug("Building neighbour index for %d points (eps=%g)", len(dataset), self.epsilon)
            self._index = NeighborIndex.build(dataset, self.epsilon)
        return self._index

    def initialize(self, dataset):
        validate_dataset(dataset)
        dataset, state = initialize(dataset)
        self.neighbor_index(dataset)
        return dataset, state

    def step(self, dataset, state):
        return step(dataset, state, self.epsilon, self.min_points, self.neighbor_index(dataset))

    def is_done(self, state) -> bool:
        return is_done(state)

    def points_added(self, state, first_new: int):
        return resume(state, first_new)

    def focus(self, state):
        return state.focus

    def clusters_found(self, state) -> int:
        return state.cluster_counter
