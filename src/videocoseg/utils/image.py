"""Image conversion helpers shared by the reference algorithms."""

from __future__ import annotations

import cv2
import numpy as np


def intensity_scale(frame: np.ndarray) -> float:
    """Factor mapping ``frame`` values onto the 0-255 model scale.

    Integer frames are scaled by their dtype range. Float frames are treated
    as unit range when the frame peaks at or below 1.0. Engines fix the scale
    once per epoch from the first frame so that it never changes between
    frames compared against the same model.
    """
    data = np.asarray(frame)
    if np.issubdtype(data.dtype, np.integer) and data.dtype != np.uint8:
        return 255.0 / float(np.iinfo(data.dtype).max)
    if np.issubdtype(data.dtype, np.floating) and data.size and float(np.nanmax(data)) <= 1.0:
        return 255.0
    return 1.0


def frame_to_intensity(
    frame: np.ndarray,
    *,
    scale: float | None = None,
    error_context: str = "frame",
) -> np.ndarray:
    """Convert grayscale/depth/RGB/RGBA arrays to a float32 HxW map on a 0-255 scale.

    ``scale`` overrides the per-frame :func:`intensity_scale`.
    """
    data = np.asarray(frame)
    if data.ndim == 3:
        channels = int(data.shape[2])
        if channels == 1:
            data = data[..., 0]
        elif channels in (3, 4):
            src = data[..., :3]
            if src.dtype not in (np.uint8, np.uint16, np.float32):
                src = src.astype(np.float32)
            data = cv2.cvtColor(np.ascontiguousarray(src), cv2.COLOR_BGR2GRAY)
        else:
            raise ValueError(f"{error_context} must have 1, 3, or 4 channels, got {channels}.")
    if data.ndim != 2:
        raise ValueError(f"{error_context} must be HxW or HxWxC, got shape={np.asarray(frame).shape}.")

    factor = intensity_scale(frame) if scale is None else float(scale)
    out = data.astype(np.float32)
    if factor != 1.0:
        out = out * np.float32(factor)
    return out
