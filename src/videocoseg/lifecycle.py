"""Engine lifecycle state machine and frame counters."""

from __future__ import annotations

import logging
from enum import Enum

from videocoseg.errors import NotInitializedError

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    PARAMS_INITIALIZED = "params_initialized"
    MODEL_INITIALIZED = "model_initialized"
    RUNNING = "running"
    RESETTING = "resetting"


_READY_STATES = (
    LifecycleState.PARAMS_INITIALIZED,
    LifecycleState.MODEL_INITIALIZED,
    LifecycleState.RUNNING,
)


class Lifecycle:
    """Single source of truth for initialization status and frame counters.

    ``initialized`` and ``model_initialized`` are derived from the state, so a
    built model without initialized parameters cannot be represented.
    """

    def __init__(self) -> None:
        self.state = LifecycleState.UNINITIALIZED
        self.frame_index = 0
        self.frames_since_reset = 0
        self.reset_cooldown = 0

    @property
    def initialized(self) -> bool:
        return self.state in _READY_STATES

    @property
    def model_initialized(self) -> bool:
        return self.state in (LifecycleState.MODEL_INITIALIZED, LifecycleState.RUNNING)

    def require_initialized(self, operation: str) -> None:
        if not self.initialized:
            raise NotInitializedError(f"'{operation}' requires a successful initialize() (state={self.state.value}).")

    def begin_epoch(self) -> None:
        """Enter a fresh initialization epoch with zeroed counters."""
        self.state = LifecycleState.PARAMS_INITIALIZED
        self.frame_index = 0
        self.frames_since_reset = 0
        self.reset_cooldown = 0

    def mark_model_initialized(self) -> None:
        self.require_initialized("mark_model_initialized")
        if self.state == LifecycleState.PARAMS_INITIALIZED:
            self.state = LifecycleState.MODEL_INITIALIZED

    def advance(self) -> None:
        """Account for one successfully processed frame."""
        self.require_initialized("advance")
        self.frame_index += 1
        self.frames_since_reset += 1
        if self.state == LifecycleState.MODEL_INITIALIZED:
            self.state = LifecycleState.RUNNING

    def begin_reset(self) -> None:
        self.require_initialized("reset")
        self.state = LifecycleState.RESETTING

    def finish_reset(self) -> None:
        if self.state != LifecycleState.RESETTING:
            raise NotInitializedError(f"finish_reset() called outside of a reset (state={self.state.value}).")
        self.begin_epoch()

    def start_cooldown(self, frames: int) -> None:
        self.reset_cooldown = max(0, int(frames))
        self.frames_since_reset = 0

    def tick_cooldown(self) -> None:
        if self.reset_cooldown > 0:
            self.reset_cooldown -= 1

    def invalidate(self) -> None:
        logger.debug("Lifecycle invalidated from state=%s", self.state.value)
        self.state = LifecycleState.UNINITIALIZED
