"""
Run/pause/step/reset driver for the step engines.

The controller is the only writer of the ``(dataset, state)`` snapshot. It
schedules ticks through any object offering tkinter's ``after(ms, func)`` /
``after_cancel(handle)`` pair (a ``tk.Tk`` in the app, a fake in tests) and
keeps at most one pending tick at a time.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

from clusterstep import config, datasets
from clusterstep.config import Algorithm, RunConfig, validate_speed
from clusterstep.dbscan import DBSCANEngine
from clusterstep.geometry import Point, ViewTransform
from clusterstep.kmeans import KMeansEngine

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class Snapshot:
    dataset: tuple
    state: object


def make_engine(cfg: RunConfig, rng=None):
    if Algorithm(cfg.algorithm) == Algorithm.DBSCAN:
        return DBSCANEngine(cfg.epsilon, cfg.min_points)
    return KMeansEngine(cfg.k, rng)


def tick_interval(speed: float) -> int:
    """Milliseconds between ticks at ``speed`` steps per second."""
    return max(1, int(round(1000 / validate_speed(speed))))


class RunController:

    def __init__(self, cfg: RunConfig, scheduler, rng=None, on_tick=None):
        self.config = cfg.validate()
        self.scheduler = scheduler
        self.rng = rng
        self.on_tick = on_tick

        self.status = RunState.STOPPED
        self.iteration = 0
        self.history: deque[Snapshot] = deque(maxlen=config.HISTORY_LIMIT)
        self._handle = None
        self._stepping = False

        self.engine = make_engine(self.config, rng)
        self.snapshot = self._initial_snapshot(self._generate())

    # ------------------------------------------------ Read-only views
    @property
    def dataset(self):
        return self.snapshot.dataset

    @property
    def state(self):
        return self.snapshot.state

    @property
    def focus(self):
        return self.engine.focus(self.snapshot.state)

    @property
    def clusters_found(self) -> int:
        return self.engine.clusters_found(self.snapshot.state)

    @property
    def is_running(self) -> bool:
        return self.status == RunState.RUNNING

    @property
    def is_done(self) -> bool:
        return self.engine.is_done(self.snapshot.state)

    # ------------------------------------------------ Snapshots
    def _generate(self):
        return datasets.generate(self.config.shape, self.config.point_count, self.rng)

    def _initial_snapshot(self, dataset) -> Snapshot:
        dataset, state = self.engine.initialize(dataset)
        self.history.clear()
        self.iteration = 0
        return Snapshot(dataset, state)

    def _notify(self):
        if self.on_tick is not None:
            self.on_tick(self)

    # ------------------------------------------------ Scheduling
    def _schedule(self):
        self._cancel()
        self._handle = self.scheduler.after(tick_interval(self.config.speed), self._tick)

    def _cancel(self):
        if self._handle is not None:
            self.scheduler.after_cancel(self._handle)
            self._handle = None

    def _enter_step(self):
        if self._stepping:
            raise RuntimeError("step requested while another step is in progress")
        self._stepping = True

    def _tick(self):
        self._handle = None
        if not self.is_running:
            return
        self._enter_step()
        try:
            self._advance()
            if self.is_done:
                self.status = RunState.STOPPED
                logger.info("Run finished after %d steps, %d clusters",
                            self.iteration, self.clusters_found)
            else:
                self._schedule()
            self._notify()
        finally:
            self._stepping = False

    def _advance(self):
        dataset, state = self.engine.step(self.snapshot.dataset, self.snapshot.state)
        self.history.append(self.snapshot)
        self.snapshot = Snapshot(dataset, state)
        self.iteration += 1

    def _keep_brushed(self, earlier: Snapshot) -> Snapshot:
        """Carry points brushed in since ``earlier`` over into it, unclassified."""
        first_new = len(earlier.dataset)
        brushed = self.snapshot.dataset[first_new:]
        if not brushed:
            return earlier
        fresh = tuple(Point(p.x, p.y) for p in brushed)
        return Snapshot(earlier.dataset + fresh, self.engine.points_added(earlier.state, first_new))

    # ------------------------------------------------ Controls
    def start(self):
        if self.is_running:
            return
        if self.is_done:
            logger.info("Nothing left to run; reset to start over")
            return
        self.status = RunState.RUNNING
        logger.info("Running %s at %g steps/s", Algorithm(self.config.algorithm).value, self.config.speed)
        self._schedule()

    def pause(self):
        self._cancel()
        if self.is_running:
            logger.info("Paused at step %d", self.iteration)
        self.status = RunState.STOPPED

    def toggle(self):
        if self.is_running:
            self.pause()
        else:
            self.start()

    def reset(self):
        """Stop, draw a new dataset and re-initialize the engine."""
        self.pause()
        self.snapshot = self._initial_snapshot(self._generate())
        logger.info("Reset with %d %s points", len(self.dataset), self.config.shape)
        self._notify()

    def step_once(self) -> bool:
        """Advance one step by hand. Only allowed while stopped."""
        if self.is_running or self.is_done:
            return False
        self._enter_step()
        try:
            self._advance()
            self._notify()
        finally:
            self._stepping = False
        return True

    def step_back(self) -> bool:
        if self.is_running or not self.history:
            return False
        self.snapshot = self._keep_brushed(self.history.pop())
        self.iteration -= 1
        self._notify()
        return True

    def fast_forward(self, max_steps: int = config.FAST_FORWARD_LIMIT) -> int:
        """Step synchronously until the engine is done or ``max_steps`` were taken."""
        self.pause()
        self._enter_step()
        try:
            taken = 0
            while taken < max_steps and not self.is_done:
                self._advance()
                taken += 1
            self._notify()
        finally:
            self._stepping = False
        return taken

    def set_speed(self, speed: float):
        self.config = self.config.with_changes(speed=speed)
        if self.is_running:
            self._schedule()

    def reconfigure(self, cfg: RunConfig):
        """
        Apply new parameters.

        A new shape or point count regenerates the dataset; other changes
        restart the engine on the current points. Speed and brush size alone
        leave the run untouched.
        """
        cfg = cfg.validate()
        old, self.config = self.config, cfg
        if (old.algorithm, old.shape, old.point_count, old.epsilon, old.min_points, old.k) == \
                (cfg.algorithm, cfg.shape, cfg.point_count, cfg.epsilon, cfg.min_points, cfg.k):
            if self.is_running:
                self._schedule()
            return

        self.pause()
        self.engine = make_engine(cfg, self.rng)
        if (old.shape, old.point_count) != (cfg.shape, cfg.point_count):
            dataset = self._generate()
        else:
            dataset = self.snapshot.dataset
        self.snapshot = self._initial_snapshot(dataset)
        self._notify()

    def inject(self, center, transform: ViewTransform | None = None, brush_radius: float | None = None):
        """Brush new points in around ``center``; existing labels are kept."""
        if brush_radius is None:
            brush_radius = self.config.brush_radius
        first_new = len(self.snapshot.dataset)
        dataset = datasets.inject(self.snapshot.dataset, center, transform, brush_radius, self.rng)
        self.snapshot = Snapshot(dataset, self.engine.points_added(self.snapshot.state, first_new))
        self._notify()
        return len(dataset)
