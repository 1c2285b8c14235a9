"""Graph-based reference cosegmentor delegating labeling to an inference backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from videocoseg.engine import VideoCosegmentor
from videocoseg.errors import DimensionMismatchError
from videocoseg.gm import InferenceBackend, ProblemDescription, log_problem_summary
from videocoseg.reset_policy import AutoResetConfig
from videocoseg.utils.image import frame_to_intensity, intensity_scale

logger = logging.getLogger(__name__)

BACKGROUND_LABEL = 0
FOREGROUND_LABEL = 1


@dataclass(slots=True)
class GraphCutConfig:
    learning_rate: float = 0.1
    unary_scale: float = 30.0
    smoothness_weight: float = 0.5
    cross_stream_weight: float = 0.5


def _potts(weight: float) -> np.ndarray:
    table = np.full((2, 2), float(weight), dtype=np.float32)
    np.fill_diagonal(table, 0.0)
    return table


def _valid_pairs(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Variable pairs of two aligned index maps where both sides are valid."""
    keep = (first >= 0) & (second >= 0)
    return np.stack([first[keep], second[keep]], axis=1)


class GraphCutCosegmentor(VideoCosegmentor):
    """Binary Potts model over valid ROI pixels of all streams.

    Variables are the validated ROI pixels of every stream. Unaries compare
    each pixel to the stream's running-average model, pairwise Potts factors
    tie 4-connected neighbours, and co-located pixels of different streams are
    tied by ``cross_stream_weight``. Factors of one kind are added as a single
    block of index pairs sharing one Potts table.
    """

    border_size = 1

    def __init__(
        self,
        backend: InferenceBackend,
        config: GraphCutConfig | None = None,
        reset_config: AutoResetConfig | None = None,
        *,
        streams: int | None = None,
        outputs: int | None = None,
    ) -> None:
        if not isinstance(backend, InferenceBackend):
            raise TypeError(f"backend must implement infer(problem), got {type(backend).__name__}")
        if streams is not None:
            self.input_count = int(streams)
        if outputs is not None:
            self.output_count = int(outputs)
        super().__init__(reset_config)
        self.backend = backend
        self.config = config or GraphCutConfig()
        self._models: list[np.ndarray] | None = None
        self._index_maps: list[np.ndarray] = []
        self._scales: list[float] = []
        self.last_problem: ProblemDescription | None = None

    @property
    def default_learning_rate(self) -> float:
        return float(self.config.learning_rate)

    def _initialize_model(self, images: Sequence[np.ndarray], rois: Sequence[np.ndarray]) -> None:
        self._scales = [intensity_scale(img) for img in images]
        self._build_index_maps(rois)
        self._models = None
        self.last_problem = None

    def _build_index_maps(self, rois: Sequence[np.ndarray]) -> None:
        offset = 0
        self._index_maps = []
        for roi in rois:
            index_map = np.full(roi.shape, -1, dtype=np.int64)
            valid = np.asarray(roi) > 0
            count = int(valid.sum())
            index_map[valid] = np.arange(offset, offset + count, dtype=np.int64)
            self._index_maps.append(index_map)
            offset += count

    def _reset_model(self) -> None:
        self._models = None
        self.last_problem = None

    def _rois_changed(self) -> None:
        self._build_index_maps(self.rois)
        super()._rois_changed()

    def build_problem(self, features: Sequence[np.ndarray]) -> ProblemDescription:
        if self._models is None:
            raise RuntimeError("Model must be built before a problem description can be assembled.")
        variable_count = int(sum(int((m >= 0).sum()) for m in self._index_maps))
        problem = ProblemDescription(label_counts=np.full(variable_count, 2, dtype=np.int64))

        scale = max(float(self.config.unary_scale), 1e-6)
        for feat, model, index_map in zip(features, self._models, self._index_maps):
            valid = index_map >= 0
            bg_cost = np.abs(feat - model)[valid] / scale
            unary = np.stack([bg_cost, np.ones_like(bg_cost)], axis=1)
            problem.add_factors(index_map[valid][:, None], unary)

        smooth = _potts(self.config.smoothness_weight)
        for index_map in self._index_maps:
            problem.add_factors(_valid_pairs(index_map[:, :-1], index_map[:, 1:]), smooth)
            problem.add_factors(_valid_pairs(index_map[:-1, :], index_map[1:, :]), smooth)

        if float(self.config.cross_stream_weight) > 0.0 and self.require_uniform_size:
            tie = _potts(self.config.cross_stream_weight)
            ref = self._index_maps[0]
            for other in self._index_maps[1:]:
                problem.add_factors(_valid_pairs(ref, other), tie)
        return problem

    def _process(self, images: Sequence[np.ndarray], learning_rate: float) -> list[np.ndarray]:
        features = [
            frame_to_intensity(img, scale=self._scales[i], error_context=f"stream #{i}")
            for i, img in enumerate(images)
        ]

        if self._models is None:
            if learning_rate > 0.0:
                self._models = [f.copy() for f in features]
                self._mark_model_initialized()
            return [
                np.full(f.shape, BACKGROUND_LABEL, dtype=self.label_dtype)
                for f in features[: self.layout.output_count]
            ]

        problem = self.build_problem(features)
        log_problem_summary(problem, logger)
        labels = np.asarray(self.backend.infer(problem)).reshape(-1)
        if labels.size != problem.variable_count:
            raise DimensionMismatchError(
                f"Inference backend returned {labels.size} labels for {problem.variable_count} variables."
            )
        self.last_problem = problem

        label_maps: list[np.ndarray] = []
        for index_map in self._index_maps:
            out = np.full(index_map.shape, BACKGROUND_LABEL, dtype=self.label_dtype)
            valid = index_map >= 0
            out[valid] = labels[index_map[valid]].astype(self.label_dtype)
            label_maps.append(out)

        if learning_rate > 0.0:
            alpha = float(min(learning_rate, 1.0))
            for feat, model, labels_s, index_map in zip(features, self._models, label_maps, self._index_maps):
                update = (index_map >= 0) & (labels_s == BACKGROUND_LABEL)
                model[update] = (1.0 - alpha) * model[update] + alpha * feat[update]
        return label_maps[: self.layout.output_count]
