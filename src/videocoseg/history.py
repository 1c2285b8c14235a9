"""One-frame lookback store for inputs and output label masks."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from videocoseg.errors import NoHistoryError


class FrameHistory:
    """Keeps private copies of the last processed inputs and masks, per stream."""

    def __init__(self, input_count: int, output_count: int) -> None:
        self.input_count = int(input_count)
        self.output_count = int(output_count)
        self._inputs: list[np.ndarray] = []
        self._masks: list[np.ndarray] = []

    @property
    def has_history(self) -> bool:
        return bool(self._inputs)

    def store(self, inputs: Sequence[np.ndarray], masks: Sequence[np.ndarray]) -> None:
        if len(inputs) != self.input_count or len(masks) != self.output_count:
            raise ValueError(
                f"History expects {self.input_count} inputs and {self.output_count} masks, "
                f"got {len(inputs)} and {len(masks)}."
            )
        self._inputs = [np.array(img, copy=True) for img in inputs]
        self._masks = [np.array(mask, copy=True) for mask in masks]

    def clear(self) -> None:
        self._inputs = []
        self._masks = []

    def last_input(self, stream_index: int) -> np.ndarray:
        return self._lookup(self._inputs, self.input_count, stream_index, "input")

    def last_mask(self, stream_index: int) -> np.ndarray:
        return self._lookup(self._masks, self.output_count, stream_index, "mask")

    @staticmethod
    def _lookup(items: list[np.ndarray], count: int, stream_index: int, kind: str) -> np.ndarray:
        idx = int(stream_index)
        if not 0 <= idx < count:
            raise IndexError(f"Stream index {stream_index} out of range for {count} {kind} streams.")
        if not items:
            raise NoHistoryError(f"No {kind} history yet; apply() has not completed since the last (re)initialization.")
        out = items[idx].view()
        out.flags.writeable = False
        return out
