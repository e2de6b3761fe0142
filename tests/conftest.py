import math

import numpy as np
import pytest

from clusterstep.geometry import Point


def tight_cluster(cx, cy, n=10, radius=2.0):
    """``n`` points on a small circle: every pair closer than ``2 * radius``."""
    return [Point(cx + radius * math.cos(2 * math.pi * i / n), cy + radius * math.sin(2 * math.pi * i / n))
            for i in range(n)]


@pytest.fixture
def three_clusters():
    pts = tight_cluster(100, 100) + tight_cluster(400, 100) + tight_cluster(250, 350)
    return tuple(pts)


@pytest.fixture
def sparse_pentagon():
    # side ~5.29, diagonal ~8.56: all within 10 of each other, none within 5
    r = 4.5
    return tuple(Point(50 + r * math.cos(2 * math.pi * i / 5), 50 + r * math.sin(2 * math.pi * i / 5))
                 for i in range(5))


@pytest.fixture
def rng():
    return np.random.default_rng(3)


class FakeScheduler:
    """Stands in for ``tk.Tk.after`` / ``after_cancel``; ticks run on demand."""

    def __init__(self):
        self.pending = {}
        self.delays = []
        self._next = 0

    def after(self, ms, func):
        self._next += 1
        handle = f"after#{self._next}"
        self.pending[handle] = func
        self.delays.append(ms)
        return handle

    def after_cancel(self, handle):
        self.pending.pop(handle, None)

    def fire(self):
        """Run every callback pending right now; returns how many ran."""
        due = list(self.pending.items())
        self.pending.clear()
        for _, func in due:
            func()
        return len(due)

    def run_until_idle(self, limit=100_000):
        ticks = 0
        while self.pending and ticks < limit:
            ticks += self.fire()
        return ticks


@pytest.fixture
def scheduler():
    return FakeScheduler()
