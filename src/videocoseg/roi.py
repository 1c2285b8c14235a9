"""ROI validation and per-stream ROI bookkeeping.

ROI masks are binary ``uint8`` images (1 = pixel processed, 0 = excluded).
Validation erodes the valid region by the algorithm's border size so that any
bounded spatial operator applied later never reads outside the valid region
or outside the image.

A mask that is already the erosion of some mask by the same kernel is left
unchanged, which makes validation idempotent on plain arrays: an eroded mask
equals its own closing and has an empty band of ``border_size`` pixels along
the image edge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import cv2
import numpy as np

from videocoseg.errors import InvalidROIError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PixelCounts:
    total: int
    original_roi: int
    final_roi: int

    def __post_init__(self) -> None:
        if not (0 <= self.final_roi <= self.original_roi <= self.total):
            raise InvalidROIError(
                f"Inconsistent ROI pixel counts: final={self.final_roi}, "
                f"original={self.original_roi}, total={self.total}"
            )


def full_roi(shape: tuple[int, ...]) -> np.ndarray:
    """All-valid ROI for an image of the given shape (channels ignored)."""
    h, w = int(shape[0]), int(shape[1])
    return np.ones((h, w), dtype=np.uint8)


def _binarize(roi: np.ndarray, index: int) -> np.ndarray:
    data = np.asarray(roi)
    if data.ndim == 3 and data.shape[2] == 1:
        data = data[..., 0]
    if data.ndim != 2:
        raise InvalidROIError(f"ROI #{index} must be a 2D mask, got shape={data.shape}")
    if data.size == 0:
        raise InvalidROIError(f"ROI #{index} is empty.")
    if data.dtype == np.bool_:
        return data.astype(np.uint8)
    if not (np.issubdtype(data.dtype, np.integer) or np.issubdtype(data.dtype, np.floating)):
        raise InvalidROIError(f"ROI #{index} has unsupported dtype {data.dtype}.")
    return (data > 0).astype(np.uint8)


def _border_kernel(border: int) -> np.ndarray:
    return np.ones((2 * border + 1, 2 * border + 1), dtype=np.uint8)


def _erode(binary: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    # Pixels outside the image count as excluded.
    return cv2.erode(binary, kernel, iterations=1, borderType=cv2.BORDER_CONSTANT, borderValue=0)


def is_validated_roi(roi: np.ndarray, border_size: int) -> bool:
    """True when ``roi`` already satisfies the ``border_size`` exclusion band.

    Decided from the pixels alone: the mask must equal its closing with the
    border kernel, where the closing treats the outside of the image as
    excluded (so the edge band of width ``border_size`` must be empty too).
    """
    border = int(border_size)
    if border < 0:
        raise ValueError(f"border_size must be >= 0, got {border_size}")
    binary = _binarize(roi, 0)
    if border == 0:
        return True
    kernel = _border_kernel(border)
    dilated = cv2.dilate(binary, kernel, iterations=1, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return bool(np.array_equal(_erode(dilated, kernel), binary))


def validate_roi(roi: np.ndarray, border_size: int, *, index: int = 0) -> np.ndarray:
    """Return a validated copy of ``roi`` with a ``border_size`` exclusion band."""
    border = int(border_size)
    if border < 0:
        raise ValueError(f"border_size must be >= 0, got {border_size}")

    binary = _binarize(roi, index)
    if border == 0 or is_validated_roi(binary, border):
        return binary
    return _erode(binary, _border_kernel(border))


def validate_rois(rois: Sequence[np.ndarray], border_size: int) -> list[np.ndarray]:
    return [validate_roi(roi, border_size, index=i) for i, roi in enumerate(rois)]


def count_roi_pixels(roi: np.ndarray) -> int:
    return int(np.count_nonzero(np.asarray(roi)))


class RoiManager:
    """Stores the validated ROI of every input stream along with pixel counts."""

    def __init__(self, stream_count: int, border_size: int) -> None:
        self.stream_count = int(stream_count)
        self.border_size = int(border_size)
        self._rois: list[np.ndarray] = []
        self._pixel_counts: list[PixelCounts] = []

    @property
    def is_set(self) -> bool:
        return bool(self._rois)

    @property
    def rois(self) -> tuple[np.ndarray, ...]:
        """Read-only views of the stored ROIs."""
        views = []
        for roi in self._rois:
            view = roi.view()
            view.flags.writeable = False
            views.append(view)
        return tuple(views)

    @property
    def pixel_counts(self) -> tuple[PixelCounts, ...]:
        return tuple(self._pixel_counts)

    def validate(self, rois: Sequence[np.ndarray]) -> list[np.ndarray]:
        return validate_rois(rois, self.border_size)

    def set_rois(self, rois: Sequence[np.ndarray], shapes: Sequence[tuple[int, int]]) -> None:
        """Validate and store ``rois``; ``shapes`` are the (H, W) of each stream.

        Nothing is stored unless every ROI passes validation.
        """
        if len(rois) != self.stream_count:
            raise InvalidROIError(f"Expected {self.stream_count} ROIs, got {len(rois)}.")
        if len(shapes) != self.stream_count:
            raise InvalidROIError(f"Expected {self.stream_count} stream shapes, got {len(shapes)}.")

        validated: list[np.ndarray] = []
        counts: list[PixelCounts] = []
        for idx, (roi, shape) in enumerate(zip(rois, shapes)):
            binary = _binarize(roi, idx)
            expected = (int(shape[0]), int(shape[1]))
            if binary.shape != expected:
                raise InvalidROIError(
                    f"ROI #{idx} shape {binary.shape} does not match stream image shape {expected}."
                )
            final = validate_roi(roi, self.border_size, index=idx)
            counts.append(
                PixelCounts(
                    total=int(binary.size),
                    original_roi=count_roi_pixels(binary),
                    final_roi=count_roi_pixels(final),
                )
            )
            validated.append(final)

        for idx, count in enumerate(counts):
            if count.final_roi == 0:
                logger.warning("ROI #%d has no valid pixels left after border cleanup.", idx)
        self._rois = validated
        self._pixel_counts = counts

    def get_rois_copy(self) -> list[np.ndarray]:
        return [roi.copy() for roi in self._rois]
