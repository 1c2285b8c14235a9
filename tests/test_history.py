from __future__ import annotations

import numpy as np
import pytest

from videocoseg.errors import NoHistoryError
from videocoseg.history import FrameHistory


def test_history_is_empty_until_first_store() -> None:
    history = FrameHistory(input_count=2, output_count=1)
    assert history.has_history is False
    with pytest.raises(NoHistoryError):
        history.last_input(0)
    with pytest.raises(NoHistoryError):
        history.last_mask(0)


def test_history_keeps_only_latest_frame() -> None:
    history = FrameHistory(input_count=1, output_count=1)
    for value in (1, 2, 3):
        history.store([np.full((4, 4), value, dtype=np.uint8)], [np.full((4, 4), value, dtype=np.uint8)])
    assert int(history.last_input(0)[0, 0]) == 3
    assert int(history.last_mask(0)[0, 0]) == 3


def test_history_views_are_read_only() -> None:
    history = FrameHistory(input_count=1, output_count=1)
    history.store([np.zeros((2, 2))], [np.zeros((2, 2), dtype=np.uint8)])
    with pytest.raises(ValueError):
        history.last_mask(0)[0, 0] = 1


def test_history_rejects_bad_stream_index_and_counts() -> None:
    history = FrameHistory(input_count=2, output_count=1)
    with pytest.raises(ValueError):
        history.store([np.zeros((2, 2))], [np.zeros((2, 2))])
    history.store([np.zeros((2, 2)), np.zeros((2, 2))], [np.zeros((2, 2))])
    with pytest.raises(IndexError):
        history.last_mask(1)
    history.clear()
    assert history.has_history is False
