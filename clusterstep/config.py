"""
Defaults and parameter validation for the clustering stepper.

Every value the UI feeds into an engine passes through one of the
``validate_*`` helpers (or :meth:`RunConfig.validate`) first, so bad input
is rejected before any dataset or engine state changes.
"""

from dataclasses import dataclass, replace
from enum import Enum

from clusterstep.exceptions import ConfigurationError

# =============================================================================
# Coordinate domain
# =============================================================================

DOMAIN_WIDTH, DOMAIN_HEIGHT = 800.0, 400.0

# Blobs: three uniformly jittered clusters plus uniform noise
BLOB_CLUSTERS = 3
BLOB_CENTER_X = (200.0, 600.0)
BLOB_CENTER_Y = (100.0, 300.0)
BLOB_SPREAD = 100.0

# Circles: two concentric rings
CIRCLE_CENTER = (400.0, 200.0)
CIRCLE_RADII = (80.0, 180.0)
RING_JITTER = 10.0

# Moons: two interleaved half-moons
MOON_SCALE = 150.0
MOON_JITTER = 10.0

# Brushing: one new point per BRUSH_SPACING screen pixels of brush radius
BRUSH_SPACING = 4.0

# Linear regression page
DEFAULT_REGRESSION_POINTS = 50
DEFAULT_REGRESSION_NOISE = 20.0

# =============================================================================
# Run defaults
# =============================================================================

DEFAULT_EPSILON = 50.0
DEFAULT_MIN_POINTS = 4
DEFAULT_POINT_COUNT = 100
DEFAULT_K = 3
DEFAULT_SPEED = 1.0
DEFAULT_BRUSH_RADIUS = 20.0

HISTORY_LIMIT = 2000
FAST_FORWARD_LIMIT = 10_000


class Algorithm(str, Enum):
    DBSCAN = "dbscan"
    KMEANS = "kmeans"


class Shape(str, Enum):
    BLOBS = "blobs"
    CIRCLES = "circles"
    MOONS = "moons"


# =============================================================================
# Validators
# =============================================================================

def _positive_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")
    try:
        as_int = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}") from None
    if as_int != value or as_int < 1:
        raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")
    return as_int


def _float_at_least(value, name: str, minimum: float, strict: bool) -> float:
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    ok = as_float > minimum if strict else as_float >= minimum
    # NaN fails both comparisons
    if not ok:
        op = ">" if strict else ">="
        raise ConfigurationError(f"{name} must be {op} {minimum:g}, got {value!r}")
    return as_float


def validate_epsilon(epsilon) -> float:
    return _float_at_least(epsilon, "epsilon", 0.0, strict=True)


def validate_min_points(min_points) -> int:
    return _positive_int(min_points, "min_points")


def validate_k(k) -> int:
    return _positive_int(k, "k")


def validate_count(count) -> int:
    return _positive_int(count, "point count")


def validate_speed(speed) -> float:
    return _float_at_least(speed, "speed", 0.0, strict=True)


def validate_brush_radius(radius) -> float:
    # zero is allowed: every brushed point then lands on the pointer
    return _float_at_least(radius, "brush radius", 0.0, strict=False)


def validate_shape(shape) -> Shape:
    try:
        return Shape(shape)
    except ValueError:
        raise ConfigurationError(f"unknown dataset shape {shape!r}") from None


def validate_algorithm(algorithm) -> Algorithm:
    try:
        return Algorithm(algorithm)
    except ValueError:
        raise ConfigurationError(f"unknown algorithm {algorithm!r}") from None


def validate_dataset(dataset):
    if not dataset:
        raise ConfigurationError("dataset is empty")
    return dataset


# =============================================================================
# Immutable run configuration
# =============================================================================

@dataclass(frozen=True)
class RunConfig:
    algorithm: Algorithm = Algorithm.DBSCAN
    shape: Shape = Shape.BLOBS
    point_count: int = DEFAULT_POINT_COUNT
    epsilon: float = DEFAULT_EPSILON
    min_points: int = DEFAULT_MIN_POINTS
    k: int = DEFAULT_K
    speed: float = DEFAULT_SPEED
    brush_radius: float = DEFAULT_BRUSH_RADIUS

    def validate(self) -> "RunConfig":
        """Return ``self`` if every field is acceptable, else raise ConfigurationError."""
        validate_algorithm(self.algorithm)
        validate_shape(self.shape)
        validate_count(self.point_count)
        validate_epsilon(self.epsilon)
        validate_min_points(self.min_points)
        validate_k(self.k)
        validate_speed(self.speed)
        validate_brush_radius(self.brush_radius)
        return self

    def with_changes(self, **changes) -> "RunConfig":
        return replace(self, **changes).validate()
