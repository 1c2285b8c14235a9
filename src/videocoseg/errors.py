"""Exception taxonomy for cosegmentation engines."""

from __future__ import annotations


class CosegmentationError(RuntimeError):
    """Base class for all engine-level failures."""


class NotInitializedError(CosegmentationError):
    """Operation requires a prior successful ``initialize``."""


class DimensionMismatchError(CosegmentationError, ValueError):
    """Stream count or per-stream image shape is inconsistent."""


class InvalidROIError(CosegmentationError, ValueError):
    """ROI mask failed validation (wrong shape, rank or dtype)."""


class NoHistoryError(CosegmentationError, LookupError):
    """Frame history queried before the first processed frame."""
