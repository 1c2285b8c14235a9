from __future__ import annotations

import numpy as np
import pytest

from videocoseg.errors import InvalidROIError
from videocoseg.roi import PixelCounts, RoiManager, full_roi, is_validated_roi, validate_roi, validate_rois


def _mask_with_hole(size: int = 20) -> np.ndarray:
    roi = np.ones((size, size), dtype=np.uint8)
    roi[8:11, 5:9] = 0
    roi[:, -3:] = 0
    return roi


def test_full_roi_border_one_leaves_eight_by_eight_interior() -> None:
    out = validate_roi(full_roi((10, 10)), border_size=1)
    expected = np.zeros((10, 10), dtype=np.uint8)
    expected[1:9, 1:9] = 1
    assert out.dtype == np.uint8
    assert np.array_equal(out, expected)


def test_set_rois_reports_pixel_counts_for_full_roi() -> None:
    manager = RoiManager(stream_count=1, border_size=1)
    manager.set_rois([full_roi((10, 10))], [(10, 10)])
    counts = manager.pixel_counts[0]
    assert counts == PixelCounts(total=100, original_roi=100, final_roi=64)


def test_validation_is_idempotent() -> None:
    roi = _mask_with_hole()
    once = validate_rois([roi], border_size=2)
    twice = validate_rois(once, border_size=2)
    assert np.array_equal(twice[0], once[0])
    assert is_validated_roi(once[0], 2)


def test_validated_mask_is_not_re_eroded_for_smaller_border() -> None:
    once = validate_roi(_mask_with_hole(), border_size=2)
    again = validate_roi(once, border_size=1)
    assert np.array_equal(again, once)


def test_border_band_excludes_neighbourhood_of_zeros_and_edges() -> None:
    roi = _mask_with_hole()
    border = 2
    out = validate_roi(roi, border_size=border)
    h, w = roi.shape
    ys, xs = np.nonzero(out)
    assert ys.size > 0
    for y, x in zip(ys, xs):
        assert border <= y < h - border
        assert border <= x < w - border
        window = roi[y - border : y + border + 1, x - border : x + border + 1]
        assert bool(window.all())


def test_zero_border_keeps_binary_mask() -> None:
    roi = _mask_with_hole()
    out = validate_roi(roi * 255, border_size=0)
    assert np.array_equal(out, roi)


def test_set_rois_rejects_shape_mismatch_without_storing() -> None:
    manager = RoiManager(stream_count=2, border_size=1)
    manager.set_rois([full_roi((8, 8)), full_roi((8, 8))], [(8, 8), (8, 8)])
    before = manager.get_rois_copy()

    with pytest.raises(InvalidROIError):
        manager.set_rois([full_roi((8, 8)), full_roi((9, 8))], [(8, 8), (8, 8)])

    after = manager.get_rois_copy()
    assert all(np.array_equal(a, b) for a, b in zip(before, after))


def test_set_rois_rejects_non_2d_mask() -> None:
    manager = RoiManager(stream_count=1, border_size=0)
    with pytest.raises(InvalidROIError):
        manager.set_rois([np.ones((4, 4, 3), dtype=np.uint8)], [(4, 4)])


def test_pixel_counts_are_monotonic_for_arbitrary_masks() -> None:
    rng = np.random.default_rng(7)
    manager = RoiManager(stream_count=3, border_size=1)
    rois = [(rng.random((12, 15)) > p).astype(np.uint8) for p in (0.1, 0.5, 0.9)]
    manager.set_rois(rois, [(12, 15)] * 3)
    for counts in manager.pixel_counts:
        assert counts.final_roi <= counts.original_roi <= counts.total == 180


def test_get_rois_copy_is_independent_from_storage() -> None:
    manager = RoiManager(stream_count=1, border_size=1)
    manager.set_rois([full_roi((6, 6))], [(6, 6)])
    copy = manager.get_rois_copy()
    copy[0][:] = 0
    assert int(manager.rois[0].sum()) == 16
    with pytest.raises(ValueError):
        manager.rois[0][2, 2] = 0


def test_plain_array_copy_of_validated_mask_is_not_eroded_again() -> None:
    once = validate_roi(_mask_with_hole(), border_size=1)
    copy = np.array(once, dtype=np.int32)
    again = validate_roi(copy, border_size=1)
    assert np.array_equal(again, once)


def test_edited_mask_is_validated_from_its_pixels() -> None:
    out = validate_roi(full_roi((6, 6)), border_size=1)
    out[:] = 1
    assert not is_validated_roi(out, 1)
    again = validate_roi(out, border_size=1)
    assert int(again.sum()) == 16
    assert not again[0, :].any() and not again[:, 0].any()


def test_mask_touching_image_edge_is_never_accepted_as_validated() -> None:
    roi = np.zeros((8, 8), dtype=np.uint8)
    roi[0:4, 0:4] = 1
    assert not is_validated_roi(roi, 1)
    out = validate_roi(roi, border_size=1)
    assert np.array_equal(np.argwhere(out), np.array([[1, 1], [1, 2], [2, 1], [2, 2]]))


def test_set_rois_validates_edited_copy() -> None:
    manager = RoiManager(stream_count=1, border_size=1)
    manager.set_rois([full_roi((10, 10))], [(10, 10)])
    rois = manager.get_rois_copy()
    rois[0][:] = 1
    manager.set_rois(rois, [(10, 10)])
    assert manager.pixel_counts[0] == PixelCounts(total=100, original_roi=100, final_roi=64)
    stored = manager.rois[0]
    assert not stored[0, :].any() and not stored[-1, :].any()
    assert not stored[:, 0].any() and not stored[:, -1].any()
