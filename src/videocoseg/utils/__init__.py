"""Shared helpers."""

from videocoseg.utils.image import frame_to_intensity, intensity_scale

__all__ = ["frame_to_intensity", "intensity_scale"]
