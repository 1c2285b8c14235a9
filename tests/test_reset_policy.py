from __future__ import annotations

import numpy as np
import pytest

from videocoseg.reset_policy import AutoResetConfig, AutoResetPolicy, ResetDecision


def test_disabled_policy_never_resets() -> None:
    policy = AutoResetPolicy(AutoResetConfig(enabled=False))
    assert policy.consult(True, frames_since_reset=100, cooldown=0) == ResetDecision.DISABLED
    assert policy.reset_count == 0


def test_cooldown_takes_precedence_over_signal() -> None:
    policy = AutoResetPolicy(AutoResetConfig(enabled=True))
    assert policy.consult(True, frames_since_reset=10, cooldown=1) == ResetDecision.COOLDOWN


def test_min_frames_before_reset() -> None:
    policy = AutoResetPolicy(AutoResetConfig(enabled=True, min_frames_before_reset=5))
    assert policy.consult(True, frames_since_reset=4, cooldown=0) == ResetDecision.KEEP
    assert policy.consult(True, frames_since_reset=5, cooldown=0) == ResetDecision.RESET
    assert policy.reset_count == 1


def test_score_signals_compare_against_threshold() -> None:
    policy = AutoResetPolicy(AutoResetConfig(enabled=True, drift_threshold=0.8))
    assert policy.is_drifting(0.5) is False
    assert policy.is_drifting(0.9) is True
    assert policy.is_drifting(np.bool_(True)) is True
    assert policy.is_drifting(None) is False


def test_config_rejects_negative_cooldown() -> None:
    with pytest.raises(ValueError):
        AutoResetConfig(cooldown_frames=-1)
