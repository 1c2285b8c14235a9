"""Probabilistic reference cosegmentor built on running-average stream models."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import cv2
import numpy as np

from videocoseg.engine import VideoCosegmentor
from videocoseg.errors import NoHistoryError
from videocoseg.qc import DriftMonitor
from videocoseg.reset_policy import AutoResetConfig, DriftSignal
from videocoseg.utils.image import frame_to_intensity, intensity_scale

logger = logging.getLogger(__name__)

BACKGROUND_LABEL = 0
FOREGROUND_LABEL = 1


@dataclass(slots=True)
class RunningAverageConfig:
    learning_rate: float = 0.05
    fg_threshold: float = 30.0
    min_stream_votes: int = 1
    freeze_fg_update: bool = True
    drift_patience: int = 5
    drift_iou_threshold: float = 0.5
    drift_area_threshold: float = 0.5


class RunningAverageCosegmentor(VideoCosegmentor):
    """Per-stream running-average background model with a joint foreground vote.

    Each stream keeps a float32 intensity model. A pixel is foreground in a
    stream when its 3x3 mean absolute deviation from the model exceeds
    ``fg_threshold``; with several equally sized streams the label is shared
    once at least ``min_stream_votes`` streams agree. The 3x3 window is why
    ROIs carry a one-pixel border.
    """

    border_size = 1

    def __init__(
        self,
        config: RunningAverageConfig | None = None,
        reset_config: AutoResetConfig | None = None,
        *,
        streams: int | None = None,
        outputs: int | None = None,
    ) -> None:
        if streams is not None:
            self.input_count = int(streams)
        if outputs is not None:
            self.output_count = int(outputs)
        super().__init__(reset_config)
        self.config = config or RunningAverageConfig()
        if int(self.config.min_stream_votes) < 1:
            raise ValueError(f"min_stream_votes must be >= 1, got {self.config.min_stream_votes}")
        self._models: list[np.ndarray] | None = None
        self._scales: list[float] = []
        self._monitor = DriftMonitor(
            patience=self.config.drift_patience,
            iou_threshold=self.config.drift_iou_threshold,
            area_change_threshold=self.config.drift_area_threshold,
        )

    @property
    def default_learning_rate(self) -> float:
        return float(self.config.learning_rate)

    @property
    def models(self) -> list[np.ndarray] | None:
        if self._models is None:
            return None
        return [m.copy() for m in self._models]

    def _initialize_model(self, images: Sequence[np.ndarray], rois: Sequence[np.ndarray]) -> None:
        self._scales = [intensity_scale(img) for img in images]
        self._models = None
        self._monitor.reset()

    def _reset_model(self) -> None:
        self._models = None
        self._monitor.reset()

    def _foreground(self, features: list[np.ndarray]) -> list[np.ndarray]:
        if self._models is None:
            raise RuntimeError("Background model is not built yet.")
        per_stream: list[np.ndarray] = []
        for feat, model, roi in zip(features, self._models, self.rois):
            dist = cv2.blur(np.abs(feat - model), (3, 3))
            per_stream.append((dist > float(self.config.fg_threshold)) & (roi > 0))

        if self.layout.input_count > 1 and self.require_uniform_size:
            votes = np.sum(np.stack(per_stream, axis=0), axis=0)
            joint = votes >= min(int(self.config.min_stream_votes), self.layout.input_count)
            return [joint & (roi > 0) for roi in self.rois]
        return per_stream

    def _update_models(self, features: list[np.ndarray], foreground: list[np.ndarray], rate: float) -> None:
        if self._models is None:
            raise RuntimeError("Background model is not built yet.")
        alpha = float(min(rate, 1.0))
        for idx, (feat, model, roi) in enumerate(zip(features, self._models, self.rois)):
            update = roi > 0
            if self.config.freeze_fg_update:
                update = update & ~foreground[min(idx, len(foreground) - 1)]
            model[update] = (1.0 - alpha) * model[update] + alpha * feat[update]

    def _process(self, images: Sequence[np.ndarray], learning_rate: float) -> list[np.ndarray]:
        features = [
            frame_to_intensity(img, scale=self._scales[i], error_context=f"stream #{i}")
            for i, img in enumerate(images)
        ]
        shapes = [f.shape for f in features[: self.layout.output_count]]

        if self._models is None:
            if learning_rate > 0.0:
                self._models = [f.copy() for f in features]
                self._mark_model_initialized()
                logger.debug("Running-average model cold start on frame %d.", self.frame_index)
            return [np.full(shape, BACKGROUND_LABEL, dtype=self.label_dtype) for shape in shapes]

        foreground = self._foreground(features)
        if learning_rate > 0.0:
            self._update_models(features, foreground, learning_rate)

        masks = [
            np.where(fg, FOREGROUND_LABEL, BACKGROUND_LABEL).astype(self.label_dtype)
            for fg in foreground[: self.layout.output_count]
        ]
        try:
            previous = self.get_last_mask(0)
        except NoHistoryError:
            previous = None
        self._monitor.update(masks[0], previous, roi=self.rois[0])
        return masks

    def _drift_signal(self, images: Sequence[np.ndarray], masks: Sequence[np.ndarray]) -> DriftSignal:
        return self._monitor.streak >= self._monitor.patience
