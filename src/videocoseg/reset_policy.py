"""Automatic model reset policy with cooldown."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

DriftSignal = bool | float | None


@dataclass(slots=True)
class AutoResetConfig:
    enabled: bool = False
    cooldown_frames: int = 30
    min_frames_before_reset: int = 1
    drift_threshold: float = 0.5

    def __post_init__(self) -> None:
        if int(self.cooldown_frames) < 0:
            raise ValueError(f"cooldown_frames must be >= 0, got {self.cooldown_frames}")
        if int(self.min_frames_before_reset) < 0:
            raise ValueError(f"min_frames_before_reset must be >= 0, got {self.min_frames_before_reset}")


class ResetDecision(str, Enum):
    DISABLED = "disabled"
    COOLDOWN = "cooldown"
    KEEP = "keep"
    RESET = "reset"


class AutoResetPolicy:
    """Decides, once per frame, whether the engine should rebuild its model."""

    def __init__(self, config: AutoResetConfig | None = None) -> None:
        self.config = config or AutoResetConfig()
        self.enabled = bool(self.config.enabled)
        self.reset_count = 0

    def is_drifting(self, signal: DriftSignal) -> bool:
        if signal is None:
            return False
        if isinstance(signal, (bool, np.bool_)):
            return bool(signal)
        return float(signal) >= float(self.config.drift_threshold)

    def consult(self, signal: DriftSignal, frames_since_reset: int, cooldown: int) -> ResetDecision:
        if not self.enabled:
            return ResetDecision.DISABLED
        if int(cooldown) > 0:
            return ResetDecision.COOLDOWN
        if int(frames_since_reset) < int(self.config.min_frames_before_reset):
            return ResetDecision.KEEP
        if not self.is_drifting(signal):
            return ResetDecision.KEEP
        self.reset_count += 1
        logger.info(
            "Automatic model reset #%d triggered after %d frames (signal=%s).",
            self.reset_count,
            int(frames_since_reset),
            signal,
        )
        return ResetDecision.RESET
