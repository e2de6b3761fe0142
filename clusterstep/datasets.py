"""
Synthetic 2-D datasets for the stepper: blobs, concentric circles,
interleaved half-moons, brushed points and a noisy line for the
regression page.

All coordinates live in the ``DOMAIN_WIDTH x DOMAIN_HEIGHT`` box and every
generated point starts unclassified and unvisited.
"""

import logging

import numpy as np
from sklearn.datasets import make_circles, make_moons

from clusterstep import config
from clusterstep.config import Shape, validate_brush_radius, validate_count, validate_shape
from clusterstep.geometry import Dataset, Point, ViewTransform

logger = logging.getLogger(__name__)

__all__ = ["Shape", "generate", "inject", "generate_linear"]


def _rng(rng):
    return rng if rng is not None else np.random.default_rng()


def _to_points(xy) -> Dataset:
    return tuple(Point(float(x), float(y)) for x, y in xy)


# ------------------------------------------------ Shape families
def _blobs(count: int, rng) -> np.ndarray:
    per_cluster = count // config.BLOB_CLUSTERS
    half = config.BLOB_SPREAD / 2
    parts = []
    for _ in range(config.BLOB_CLUSTERS):
        cx = rng.uniform(*config.BLOB_CENTER_X)
        cy = rng.uniform(*config.BLOB_CENTER_Y)
        parts.append(np.column_stack((cx + rng.uniform(-half, half, per_cluster),
                                      cy + rng.uniform(-half, half, per_cluster))))

    # Whatever doesn't divide evenly becomes background noise
    leftover = count - config.BLOB_CLUSTERS * per_cluster
    parts.append(np.column_stack((rng.uniform(0, config.DOMAIN_WIDTH, leftover),
                                  rng.uniform(0, config.DOMAIN_HEIGHT, leftover))))
    return np.vstack(parts)


def _circles(count: int, rng) -> np.ndarray:
    inner_radius, outer_radius = config.CIRCLE_RADII
    n_inner = count // 2
    n_outer = count - n_inner

    # make_circles emits the outer ring first; put the inner ring first instead
    X, _ = make_circles(n_samples=(n_outer, n_inner), shuffle=False,
                        factor=inner_radius / outer_radius)
    X = np.vstack((X[n_outer:], X[:n_outer])) * outer_radius

    radii = np.linalg.norm(X, axis=1, keepdims=True)
    jitter = rng.uniform(-config.RING_JITTER, config.RING_JITTER, (count, 1))
    X = X / radii * (radii + jitter)
    return X + np.asarray(config.CIRCLE_CENTER)


def _moons(count: int, rng) -> np.ndarray:
    n_first = count // 2
    n_second = count - n_first
    X, _ = make_moons(n_samples=(n_first, n_second), shuffle=False)
    X = X + rng.uniform(-config.MOON_JITTER / config.MOON_SCALE,
                        config.MOON_JITTER / config.MOON_SCALE, X.shape)

    # make_moons spans [-1, 2] x [-0.5, 1]; centre that box on the domain
    middle = np.array([0.5, 0.25])
    center = np.array([config.DOMAIN_WIDTH / 2, config.DOMAIN_HEIGHT / 2])
    return (X - middle) * config.MOON_SCALE + center


_GENERATORS = {
    Shape.BLOBS: _blobs,
    Shape.CIRCLES: _circles,
    Shape.MOONS: _moons,
}


def generate(shape, count: int, rng=None) -> Dataset:
    """Generate ``count`` unclassified points in the given shape family."""
    shape = validate_shape(shape)
    count = validate_count(count)
    X = _GENERATORS[shape](count, _rng(rng))
    logger.debug("Generated %d %s points", count, shape.value)
    return _to_points(X)


# ------------------------------------------------ Brushing
def brush_count(brush_radius: float) -> int:
    return max(1, int(round(brush_radius / config.BRUSH_SPACING)))


def inject(dataset, center, transform: ViewTransform | None = None, brush_radius: float = 0.0,
           rng=None) -> Dataset:
    """
    Append brushed points around ``center`` (data-space coordinates).

    ``brush_radius`` is measured on screen, so it is divided by the view's zoom
    factor before sampling; bigger brushes drop proportionally more points.
    Existing points are carried over untouched.
    """
    brush_radius = validate_brush_radius(brush_radius)
    transform = transform or ViewTransform()
    rng = _rng(rng)

    n = brush_count(brush_radius)
    radius = brush_radius / transform.k
    r = radius * np.sqrt(rng.uniform(0, 1, n))
    theta = rng.uniform(0, 2 * np.pi, n)
    cx, cy = center
    added = _to_points(np.column_stack((cx + r * np.cos(theta), cy + r * np.sin(theta))))
    logger.debug("Brushed %d points at (%.1f, %.1f)", n, cx, cy)
    return tuple(dataset) + added


# ------------------------------------------------ Regression data
def generate_linear(count: int = config.DEFAULT_REGRESSION_POINTS,
                    noise: float = config.DEFAULT_REGRESSION_NOISE, rng=None) -> Dataset:
    """Points scattered around a random line ``y = slope * x + intercept``."""
    count = validate_count(count)
    rng = _rng(rng)
    slope = rng.uniform(-1, 1)
    intercept = rng.uniform(0, 100)
    x = rng.uniform(0, config.DOMAIN_WIDTH, count)
    y = slope * x + intercept + (rng.uniform(0, 1, count) - 0.5) * noise
    return _to_points(np.column_stack((x, y)))
