"""Step-by-step DBSCAN and K-Means on synthetic 2-D datasets."""

from clusterstep.config import Algorithm, RunConfig, Shape
from clusterstep.controller import RunController, RunState
from clusterstep.dbscan import DBSCANEngine, DBSCANState, Phase
from clusterstep.exceptions import ConfigurationError
from clusterstep.geometry import NOISE, Point, ViewTransform
from clusterstep.kmeans import KMeansEngine, KMeansState

__all__ = [
    "Algorithm", "RunConfig", "Shape",
    "RunController", "RunState",
    "DBSCANEngine", "DBSCANState", "Phase",
    "ConfigurationError",
    "NOISE", "Point", "ViewTransform",
    "KMeansEngine", "KMeansState",
]
