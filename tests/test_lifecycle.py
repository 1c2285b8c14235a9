from __future__ import annotations

import pytest

from videocoseg.errors import NotInitializedError
from videocoseg.lifecycle import Lifecycle, LifecycleState


def test_lifecycle_starts_uninitialized() -> None:
    lc = Lifecycle()
    assert lc.state == LifecycleState.UNINITIALIZED
    assert (lc.frame_index, lc.frames_since_reset, lc.reset_cooldown) == (0, 0, 0)
    assert lc.initialized is False
    assert lc.model_initialized is False


def test_lifecycle_happy_path_transitions() -> None:
    lc = Lifecycle()
    lc.begin_epoch()
    assert lc.state == LifecycleState.PARAMS_INITIALIZED
    lc.mark_model_initialized()
    assert lc.state == LifecycleState.MODEL_INITIALIZED
    assert lc.model_initialized is True
    lc.advance()
    assert lc.state == LifecycleState.RUNNING
    assert lc.frame_index == 1
    lc.mark_model_initialized()
    assert lc.state == LifecycleState.RUNNING


def test_model_cannot_be_marked_before_params() -> None:
    lc = Lifecycle()
    with pytest.raises(NotInitializedError):
        lc.mark_model_initialized()
    with pytest.raises(NotInitializedError):
        lc.advance()
    with pytest.raises(NotInitializedError):
        lc.begin_reset()


def test_reset_returns_to_params_initialized_with_zero_counters() -> None:
    lc = Lifecycle()
    lc.begin_epoch()
    lc.mark_model_initialized()
    lc.advance()
    lc.advance()
    lc.begin_reset()
    assert lc.state == LifecycleState.RESETTING
    assert lc.initialized is False
    lc.finish_reset()
    assert lc.state == LifecycleState.PARAMS_INITIALIZED
    assert lc.frame_index == 0


def test_finish_reset_outside_reset_fails() -> None:
    lc = Lifecycle()
    lc.begin_epoch()
    with pytest.raises(NotInitializedError):
        lc.finish_reset()


def test_cooldown_ticks_down_to_zero() -> None:
    lc = Lifecycle()
    lc.begin_epoch()
    lc.advance()
    lc.start_cooldown(2)
    assert lc.frames_since_reset == 0
    lc.tick_cooldown()
    lc.tick_cooldown()
    lc.tick_cooldown()
    assert lc.reset_cooldown == 0


def test_invalidate_drops_initialized_flag() -> None:
    lc = Lifecycle()
    lc.begin_epoch()
    lc.invalidate()
    assert lc.initialized is False
