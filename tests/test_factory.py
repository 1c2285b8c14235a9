from __future__ import annotations

import numpy as np
import pytest

from videocoseg.algorithms import GraphCutCosegmentor, RunningAverageCosegmentor
from videocoseg.config import EngineConfig
from videocoseg.factory import build_cosegmentor


class NullBackend:
    def infer(self, problem):
        return np.zeros(problem.variable_count, dtype=np.int64)


def test_builds_running_average_with_stream_layout() -> None:
    engine = build_cosegmentor(EngineConfig(streams=2, outputs=1, auto_model_reset=True))
    assert isinstance(engine, RunningAverageCosegmentor)
    assert (engine.layout.input_count, engine.layout.output_count) == (2, 1)
    assert engine.automatic_model_reset is True


def test_graph_cut_requires_backend() -> None:
    with pytest.raises(ValueError):
        build_cosegmentor(EngineConfig(algorithm="graph_cut"))
    engine = build_cosegmentor(EngineConfig(algorithm="graph_cut"), backend=NullBackend())
    assert isinstance(engine, GraphCutCosegmentor)


def test_unknown_algorithm() -> None:
    with pytest.raises(ValueError):
        build_cosegmentor(EngineConfig(algorithm="watershed"))


def test_instances_do_not_share_state() -> None:
    a = build_cosegmentor(EngineConfig(streams=2))
    b = build_cosegmentor(EngineConfig())
    assert a.layout.input_count == 2
    assert b.layout.input_count == 1
    a.initialize([np.zeros((8, 8), dtype=np.uint8)] * 2)
    assert b.initialized is False
