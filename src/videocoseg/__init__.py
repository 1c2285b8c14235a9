"""Runtime core for online video cosegmentation engines."""

from videocoseg.engine import StreamLayout, VideoCosegmentor
from videocoseg.errors import (
    CosegmentationError,
    DimensionMismatchError,
    InvalidROIError,
    NoHistoryError,
    NotInitializedError,
)
from videocoseg.lifecycle import LifecycleState
from videocoseg.reset_policy import AutoResetConfig
from videocoseg.roi import PixelCounts, is_validated_roi, validate_roi, validate_rois

__all__ = [
    "AutoResetConfig",
    "CosegmentationError",
    "DimensionMismatchError",
    "InvalidROIError",
    "LifecycleState",
    "NoHistoryError",
    "NotInitializedError",
    "PixelCounts",
    "StreamLayout",
    "VideoCosegmentor",
    "is_validated_roi",
    "validate_roi",
    "validate_rois",
]
