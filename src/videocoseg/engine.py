"""Stateful contract shared by every video cosegmentation algorithm.

A :class:`VideoCosegmentor` owns four components: ROI bookkeeping, the
lifecycle state machine, the one-frame history store and the automatic reset
policy. Concrete algorithms only provide the model-specific hooks
(``_initialize_model``, ``_process`` and optionally ``_drift_signal`` /
``_reset_model``); input validation, counters and reset handling live here.

Instances are not thread-safe. One caller drives ``initialize``/``apply``/
``reset`` in sequence; independent instances share no mutable state.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, MutableSequence, Sequence

import numpy as np

from videocoseg.errors import DimensionMismatchError
from videocoseg.history import FrameHistory
from videocoseg.lifecycle import Lifecycle, LifecycleState
from videocoseg.reset_policy import AutoResetConfig, AutoResetPolicy, DriftSignal, ResetDecision
from videocoseg.roi import PixelCounts, RoiManager, full_roi

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StreamLayout:
    """Input/output stream counts; output stream ``s`` mirrors input stream ``s``."""

    input_count: int
    output_count: int

    def __post_init__(self) -> None:
        for name in ("input_count", "output_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.output_count > self.input_count:
            raise ValueError(
                f"output_count ({self.output_count}) cannot exceed input_count ({self.input_count})"
            )


class VideoCosegmentor(ABC):
    """Base class for online cosegmentation over synchronized image streams."""

    input_count: ClassVar[int] = 1
    output_count: ClassVar[int | None] = None
    border_size: ClassVar[int] = 0
    label_dtype: ClassVar[Any] = np.uint8
    require_uniform_size: ClassVar[bool] = True

    def __init__(self, reset_config: AutoResetConfig | None = None) -> None:
        output_count = self.output_count if self.output_count is not None else self.input_count
        self.layout = StreamLayout(input_count=self.input_count, output_count=output_count)
        if int(self.border_size) < 0:
            raise ValueError(f"border_size must be >= 0, got {self.border_size}")

        self._roi_manager = RoiManager(self.layout.input_count, int(self.border_size))
        self._lifecycle = Lifecycle()
        self._history = FrameHistory(self.layout.input_count, self.layout.output_count)
        self._reset_policy = AutoResetPolicy(reset_config)
        self._stream_shapes: tuple[tuple[int, ...], ...] = ()

    # ---- algorithm hooks ----

    @property
    @abstractmethod
    def default_learning_rate(self) -> float:
        """Learning rate used by ``apply`` when called with a negative rate."""

    @abstractmethod
    def _initialize_model(self, images: Sequence[np.ndarray], rois: Sequence[np.ndarray]) -> None:
        """Prepare model buffers for a new epoch; the model itself may be built lazily."""

    @abstractmethod
    def _process(self, images: Sequence[np.ndarray], learning_rate: float) -> list[np.ndarray]:
        """Label the current frame and update the model with ``learning_rate`` (0 = frozen)."""

    def _drift_signal(self, images: Sequence[np.ndarray], masks: Sequence[np.ndarray]) -> DriftSignal:
        return False

    def _reset_model(self) -> None:
        return None

    def _rois_changed(self) -> None:
        self.reset()

    # ---- state ----

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def initialized(self) -> bool:
        return self._lifecycle.initialized

    @property
    def model_initialized(self) -> bool:
        return self._lifecycle.model_initialized

    @property
    def frame_index(self) -> int:
        return self._lifecycle.frame_index

    @property
    def frames_since_reset(self) -> int:
        return self._lifecycle.frames_since_reset

    @property
    def reset_cooldown(self) -> int:
        return self._lifecycle.reset_cooldown

    @property
    def automatic_model_reset(self) -> bool:
        return self._reset_policy.enabled

    @property
    def automatic_reset_count(self) -> int:
        return self._reset_policy.reset_count

    @property
    def pixel_counts(self) -> tuple[PixelCounts, ...]:
        return self._roi_manager.pixel_counts

    @property
    def stream_shapes(self) -> tuple[tuple[int, ...], ...]:
        return self._stream_shapes

    @property
    def rois(self) -> tuple[np.ndarray, ...]:
        return self._roi_manager.rois

    def _mark_model_initialized(self) -> None:
        self._lifecycle.mark_model_initialized()

    # ---- ROI management ----

    def set_automatic_model_reset(self, enabled: bool) -> None:
        self._reset_policy.enabled = bool(enabled)

    def validate_rois(self, rois: Sequence[np.ndarray]) -> list[np.ndarray]:
        return self._roi_manager.validate(rois)

    def set_rois(self, rois: Sequence[np.ndarray]) -> None:
        """Replace the ROIs of the current epoch; the model is reset afterwards."""
        self._lifecycle.require_initialized("set_rois")
        staged = RoiManager(self.layout.input_count, int(self.border_size))
        staged.set_rois(rois, [shape[:2] for shape in self._stream_shapes])
        self._roi_manager = staged
        self._rois_changed()

    def get_rois_copy(self) -> list[np.ndarray]:
        return self._roi_manager.get_rois_copy()

    # ---- history ----

    def get_last_input(self, stream_index: int) -> np.ndarray:
        return self._history.last_input(stream_index)

    def get_last_mask(self, stream_index: int) -> np.ndarray:
        return self._history.last_mask(stream_index)

    # ---- lifecycle ----

    def _check_images(self, images: Sequence[np.ndarray] | np.ndarray) -> list[np.ndarray]:
        if isinstance(images, np.ndarray):
            images = [images]
        frames = [np.asarray(img) for img in images]
        if len(frames) != self.layout.input_count:
            raise DimensionMismatchError(
                f"Expected {self.layout.input_count} input streams, got {len(frames)}."
            )
        for idx, frame in enumerate(frames):
            if frame.ndim not in (2, 3) or frame.size == 0:
                raise DimensionMismatchError(
                    f"Input stream #{idx} must be a non-empty HxW or HxWxC image, got shape={frame.shape}."
                )
        if self.require_uniform_size:
            ref = frames[0].shape[:2]
            for idx, frame in enumerate(frames[1:], start=1):
                if frame.shape[:2] != ref:
                    raise DimensionMismatchError(
                        f"Input stream #{idx} size {frame.shape[:2]} differs from stream #0 size {ref}."
                    )
        return frames

    def _check_outputs(self, outputs: Sequence[np.ndarray]) -> list[np.ndarray]:
        masks = list(outputs)
        if len(masks) != self.layout.output_count:
            raise DimensionMismatchError(
                f"{type(self).__name__} produced {len(masks)} masks, expected {self.layout.output_count}."
            )
        checked: list[np.ndarray] = []
        for idx, mask in enumerate(masks):
            arr = np.asarray(mask)
            expected = self._stream_shapes[idx][:2]
            if arr.shape != expected:
                raise DimensionMismatchError(
                    f"Output mask #{idx} shape {arr.shape} does not match stream shape {expected}."
                )
            checked.append(arr.astype(self.label_dtype, copy=False))
        return checked

    def initialize(
        self,
        images: Sequence[np.ndarray] | np.ndarray,
        rois: Sequence[np.ndarray] | None = None,
    ) -> None:
        """(Re)initialize the engine; ``rois=None`` marks every pixel valid."""
        frames = self._check_images(images)
        shapes = [frame.shape[:2] for frame in frames]
        if rois is None:
            rois = [full_roi(shape) for shape in shapes]

        staged = RoiManager(self.layout.input_count, int(self.border_size))
        staged.set_rois(rois, shapes)

        self._roi_manager = staged
        self._stream_shapes = tuple(tuple(frame.shape) for frame in frames)
        self._history.clear()
        self._lifecycle.begin_epoch()
        try:
            self._initialize_model(frames, self._roi_manager.rois)
        except Exception:
            self._lifecycle.invalidate()
            raise
        logger.info(
            "%s initialized: streams=%d->%d, shapes=%s, roi_px=%s",
            type(self).__name__,
            self.layout.input_count,
            self.layout.output_count,
            [shape[:2] for shape in self._stream_shapes],
            [c.final_roi for c in self._roi_manager.pixel_counts],
        )

    def apply(
        self,
        images: Sequence[np.ndarray] | np.ndarray,
        masks: MutableSequence[np.ndarray] | None = None,
        learning_rate: float = -1.0,
    ) -> list[np.ndarray]:
        """Segment one frame set and update the temporal model.

        Negative ``learning_rate`` selects :attr:`default_learning_rate`; zero
        labels the frame without touching the model. History is updated either
        way. If ``masks`` is given, it receives the output masks in place.
        """
        self._lifecycle.require_initialized("apply")
        frames = self._check_images(images)
        for idx, (frame, shape) in enumerate(zip(frames, self._stream_shapes)):
            if tuple(frame.shape) != shape:
                raise DimensionMismatchError(
                    f"Input stream #{idx} shape {frame.shape} differs from initialized shape {shape}."
                )
        if masks is not None and len(masks) != self.layout.output_count:
            raise DimensionMismatchError(
                f"Expected {self.layout.output_count} output slots, got {len(masks)}."
            )
        rate = float(learning_rate)
        if math.isnan(rate):
            raise ValueError("learning_rate must not be NaN.")
        if rate < 0.0:
            rate = float(self.default_learning_rate)

        outputs = self._check_outputs(self._process(frames, rate))

        signal: DriftSignal = None
        if self._reset_policy.enabled and self._lifecycle.reset_cooldown == 0:
            signal = self._drift_signal(frames, outputs)

        self._history.store(frames, outputs)
        self._lifecycle.advance()
        logger.debug(
            "Frame %d processed (since_reset=%d, lr=%.4f)",
            self._lifecycle.frame_index,
            self._lifecycle.frames_since_reset,
            rate,
        )

        decision = self._reset_policy.consult(
            signal,
            self._lifecycle.frames_since_reset,
            self._lifecycle.reset_cooldown,
        )
        if decision == ResetDecision.COOLDOWN:
            self._lifecycle.tick_cooldown()
        elif decision == ResetDecision.RESET:
            self._automatic_reset(frames)

        if masks is not None:
            for idx, out in enumerate(outputs):
                slot = masks[idx]
                if isinstance(slot, np.ndarray) and slot.shape == out.shape and slot.flags.writeable:
                    np.copyto(slot, out, casting="unsafe")
                else:
                    masks[idx] = out.copy()
        return outputs

    def _automatic_reset(self, frames: Sequence[np.ndarray]) -> None:
        rois = self._roi_manager.get_rois_copy()
        self._lifecycle.begin_reset()
        try:
            self._reset_model()
            self.initialize(frames, rois)
        except Exception:
            self._lifecycle.invalidate()
            logger.error("Automatic model reset failed; %s must be re-initialized.", type(self).__name__)
            raise
        self._lifecycle.start_cooldown(self._reset_policy.config.cooldown_frames)

    def reset(self) -> None:
        """Drop the temporal model, history and counters; ROIs are kept."""
        if not self._lifecycle.initialized:
            logger.debug("reset() ignored on uninitialized %s.", type(self).__name__)
            return
        self._lifecycle.begin_reset()
        try:
            self._reset_model()
        except Exception:
            self._lifecycle.invalidate()
            raise
        self._history.clear()
        self._lifecycle.finish_reset()
        logger.info("%s model reset.", type(self).__name__)
