from __future__ import annotations

import numpy as np
import pytest

from arcalib.calib.samples import CorrespondenceSet, SampleCollector
from arcalib.core.board import ChessboardSpec
from arcalib.errors import InvalidDimension


def _sample(offset: float = 0.0) -> CorrespondenceSet:
    board = ChessboardSpec(width=3, height=2, pitch_mm=10.0)
    obj = board.object_points()
    return CorrespondenceSet(obj[:, :2] + offset, obj)


def test_capture_requires_arming() -> None:
    c = SampleCollector()
    assert not c.armed
    assert c.on_detection(_sample()) is False
    assert c.count() == 0

    c.arm()
    c.arm()
    assert c.armed
    assert c.on_detection(_sample(1.0)) is True
    assert c.count() == 1
    assert not c.armed

    assert c.on_detection(_sample(2.0)) is False
    assert c.count() == 1


def test_samples_keep_insertion_order_and_reset() -> None:
    c = SampleCollector()
    for k in range(3):
        c.arm()
        c.on_detection(_sample(float(k)))
    samples = c.samples()
    assert isinstance(samples, tuple)
    assert [float(s.image_points[0, 0]) for s in samples] == [0.0, 1.0, 2.0]

    c.arm()
    c.reset()
    assert c.count() == 0
    assert not c.armed


def test_correspondence_set_is_immutable_copy() -> None:
    img = np.zeros((4, 2))
    obj = np.zeros((4, 3))
    s = CorrespondenceSet(img, obj)
    img[0, 0] = 5.0
    assert s.image_points[0, 0] == 0.0
    assert len(s) == 4
    with pytest.raises(ValueError):
        s.image_points[0, 0] = 1.0


def test_correspondence_set_rejects_length_mismatch() -> None:
    with pytest.raises(InvalidDimension):
        CorrespondenceSet(np.zeros((5, 2)), np.zeros((4, 3)))
