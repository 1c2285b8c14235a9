"""Temporal QC helpers used as drift signals for automatic model resets."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def compute_iou(mask_a: np.ndarray, mask_b: np.ndarray, roi: np.ndarray | None = None) -> float:
    """IoU of the non-zero labels of two masks, optionally restricted to an ROI."""
    a = np.asarray(mask_a) > 0
    b = np.asarray(mask_b) > 0
    if roi is not None:
        valid = np.asarray(roi) > 0
        a = a & valid
        b = b & valid
    intersection = int(np.logical_and(a, b).sum())
    union = int(np.logical_or(a, b).sum())
    if union <= 0:
        return 1.0
    return float(intersection / union)


@dataclass(slots=True)
class DriftCheck:
    iou: float
    area_ratio: float
    drift: bool


def check_drift(
    current_mask: np.ndarray,
    previous_mask: np.ndarray,
    iou_threshold: float = 0.70,
    area_change_threshold: float = 0.40,
    roi: np.ndarray | None = None,
) -> DriftCheck:
    iou = compute_iou(current_mask, previous_mask, roi=roi)
    cur = np.asarray(current_mask) > 0
    prev = np.asarray(previous_mask) > 0
    if roi is not None:
        valid = np.asarray(roi) > 0
        cur = cur & valid
        prev = prev & valid
    cur_area = float(cur.sum())
    prev_area = float(prev.sum())
    area_ratio = cur_area / max(prev_area, 1.0)
    if cur_area == 0.0 and prev_area == 0.0:
        area_ratio = 1.0
    drift = bool(iou < float(iou_threshold) or abs(1.0 - area_ratio) > float(area_change_threshold))
    return DriftCheck(iou=iou, area_ratio=area_ratio, drift=drift)


class DriftMonitor:
    """Turns per-frame drift checks into a sustained-instability flag.

    The flag is raised once ``patience`` consecutive frames drifted; any
    stable frame clears the streak.
    """

    def __init__(
        self,
        patience: int = 5,
        iou_threshold: float = 0.70,
        area_change_threshold: float = 0.40,
    ) -> None:
        if int(patience) < 1:
            raise ValueError(f"patience must be >= 1, got {patience}")
        self.patience = int(patience)
        self.iou_threshold = float(iou_threshold)
        self.area_change_threshold = float(area_change_threshold)
        self.streak = 0
        self.last_check: DriftCheck | None = None

    def reset(self) -> None:
        self.streak = 0
        self.last_check = None

    def update(
        self,
        current_mask: np.ndarray,
        previous_mask: np.ndarray | None,
        roi: np.ndarray | None = None,
    ) -> bool:
        if previous_mask is None:
            self.streak = 0
            self.last_check = None
            return False
        check = check_drift(
            current_mask,
            previous_mask,
            iou_threshold=self.iou_threshold,
            area_change_threshold=self.area_change_threshold,
            roi=roi,
        )
        self.last_check = check
        self.streak = self.streak + 1 if check.drift else 0
        return self.streak >= self.patience
