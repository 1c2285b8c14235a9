"""Build configured cosegmentation engines."""

from __future__ import annotations

import logging

from videocoseg.algorithms.graph_cut import GraphCutCosegmentor
from videocoseg.algorithms.running_average import RunningAverageCosegmentor
from videocoseg.config import EngineConfig
from videocoseg.engine import VideoCosegmentor
from videocoseg.gm import InferenceBackend

logger = logging.getLogger(__name__)


def build_cosegmentor(cfg: EngineConfig, backend: InferenceBackend | None = None) -> VideoCosegmentor:
    algorithm = str(cfg.algorithm).strip().lower()
    outputs = int(cfg.outputs) or None
    if algorithm == "running_average":
        engine: VideoCosegmentor = RunningAverageCosegmentor(
            cfg.running_average_config(),
            cfg.auto_reset_config(),
            streams=int(cfg.streams),
            outputs=outputs,
        )
    elif algorithm == "graph_cut":
        if backend is None:
            raise ValueError("graph_cut cosegmentation requires an inference backend.")
        engine = GraphCutCosegmentor(
            backend,
            cfg.graph_cut_config(),
            cfg.auto_reset_config(),
            streams=int(cfg.streams),
            outputs=outputs,
        )
    else:
        raise ValueError(f"Unsupported cosegmentation algorithm: {cfg.algorithm}")
    logger.info(
        "Built %s (streams=%d, outputs=%d, auto_reset=%s).",
        type(engine).__name__,
        engine.layout.input_count,
        engine.layout.output_count,
        engine.automatic_model_reset,
    )
    return engine
