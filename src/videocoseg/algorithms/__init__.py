"""Reference cosegmentation algorithms."""

from videocoseg.algorithms.graph_cut import GraphCutConfig, GraphCutCosegmentor
from videocoseg.algorithms.running_average import RunningAverageConfig, RunningAverageCosegmentor

__all__ = [
    "GraphCutConfig",
    "GraphCutCosegmentor",
    "RunningAverageConfig",
    "RunningAverageCosegmentor",
]
