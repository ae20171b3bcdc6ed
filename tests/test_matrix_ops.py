from __future__ import annotations

import numpy as np
import pytest

from arcalib.core import matrix_ops as mo
from arcalib.core.board import ChessboardSpec
from arcalib.core.intrinsics import CameraMatrix, Intrinsics, Pose
from arcalib.errors import InvalidDimension
from arcalib.sim.synthetic import board_pose


def _K(f: float = 800.0, cx: float = 320.0, cy: float = 240.0) -> np.ndarray:
    return np.array([[f, 0.0, cx], [0.0, f, cy], [0.0, 0.0, 1.0]], dtype=np.float64)


def _random_inputs(seed: int):
    rng = np.random.default_rng(seed)
    q, _ = np.linalg.qr(rng.normal(size=(3, 3)))
    view = mo.translation_to_homogeneous(rng.normal(size=3))
    return float(rng.uniform(0.5, 2.0)), _K(rng.uniform(400, 1200)), q, rng.normal(size=3) * 100.0, view


def test_projection_is_deterministic() -> None:
    ratio, K, R, t, V = _random_inputs(0)
    a = mo.compute_projection_matrix(ratio, K, R, t, V)
    b = mo.compute_projection_matrix(ratio, K, R, t, V)
    assert a.shape == (4, 4)
    assert np.array_equal(a, b)


def test_projection_identity_pose_composition() -> None:
    f, cx, cy, r = 800.0, 320.0, 240.0, 0.5
    m = mo.compute_projection_matrix(r, _K(f, cx, cy), np.eye(3), np.zeros(3), np.eye(4))

    expected = np.array(
        [
            [r, 0.0, 0.0, 0.0],
            [0.0, -r, 0.0, 0.0],
            [-cx * r / f, -cy * r / f, -r, -1.0 / f],
            [0.0, 0.0, 0.0, 0.0],
        ]
    )
    assert np.allclose(m, expected, rtol=0.0, atol=1e-15)
    # perspective_divide zeroes [3, 3] so points land on ratio * (f*x/z + cx, f*y/z + cy);
    # with the z flip that leaves -1/f at [2, 3] and a zero last row (see DESIGN.md).
    assert m[2, 3] == pytest.approx(-1.0 / f)


def test_builders_place_terms_in_renderer_layout() -> None:
    f, cx, cy, r = 640.0, 300.0, 200.0, 1.25
    scale = mo.viewport_scale(r, cx, cy)
    assert np.array_equal(scale[3], [cx * r, cy * r, 0.0, 1.0])
    assert np.array_equal(np.diag(scale), [r, r, r, 1.0])

    persp = mo.perspective_divide(f)
    assert persp[2, 3] == 1.0 / f
    assert persp[3, 3] == 0.0

    t = mo.translation_to_homogeneous([1.0, 2.0, 3.0])
    assert np.array_equal(t[3], [1.0, 2.0, 3.0, 1.0])
    assert np.array_equal(mo.flip_yz(), np.diag([1.0, -1.0, -1.0, 1.0]))


def test_rotation_embedding_uses_columns_as_rows() -> None:
    R = np.arange(9, dtype=np.float64).reshape(3, 3)
    m = mo.rotation_to_homogeneous(R.reshape(-1))
    assert np.array_equal(m[:3, :3], R.T)
    assert np.array_equal(m[3], [0.0, 0.0, 0.0, 1.0])
    assert np.array_equal(m[:, 3], [0.0, 0.0, 0.0, 1.0])


def test_compose_applies_right_operand_first() -> None:
    shift = mo.translation_to_homogeneous([1.0, 0.0, 0.0])
    double = np.diag([2.0, 2.0, 2.0, 1.0])
    out = mo.transform_points(mo.compose(shift, double), [[1.0, 1.0, 1.0]])
    assert np.allclose(out, [[3.0, 2.0, 2.0]])
    out = mo.transform_points(mo.compose(double, shift), [[1.0, 1.0, 1.0]])
    assert np.allclose(out, [[4.0, 2.0, 2.0]])


def test_projection_maps_points_to_scaled_pixels() -> None:
    board = ChessboardSpec()
    pose = board_pose(board, euler_xyz_deg=(15.0, -20.0, 5.0), distance_mm=600.0, offset_mm=(10.0, -5.0))
    intr = Intrinsics(CameraMatrix.from_params(800.0, 800.0, 319.5, 239.5))
    ratio = 1.5

    m = mo.compute_projection_matrix(ratio, intr.K(), pose.rotation, pose.translation, np.eye(4))
    obj = board.object_points()
    # renderer content is Y-up/Z-backward; flip it back to compare with the vision pinhole model
    uv = intr.project(pose, obj * np.array([1.0, -1.0, -1.0]))
    out = mo.transform_points(m, obj)
    assert np.allclose(out[:, :2], ratio * uv, atol=1e-8)
    assert np.allclose(out[:, 2], ratio * 800.0)


def test_view_matrix_composes_after_pose_translation() -> None:
    ratio, K, R, t, _ = _random_inputs(3)
    d = np.array([5.0, -7.0, 11.0])
    with_view = mo.compute_projection_matrix(ratio, K, R, t, mo.translation_to_homogeneous(d))
    folded = mo.compute_projection_matrix(ratio, K, R, t + d, np.eye(4))
    assert np.allclose(with_view, folded, atol=1e-12)


def test_malformed_inputs_raise_invalid_dimension() -> None:
    with pytest.raises(InvalidDimension):
        mo.compute_projection_matrix(1.0, _K(), np.eye(3).reshape(-1)[:8], np.zeros(3), np.eye(4))
    with pytest.raises(InvalidDimension):
        mo.compute_projection_matrix(1.0, _K(), np.eye(3), np.zeros(2), np.eye(4))
    with pytest.raises(InvalidDimension):
        mo.compute_projection_matrix(1.0, _K(), np.eye(3), np.zeros(3), np.eye(3))
    with pytest.raises(InvalidDimension):
        mo.perspective_divide(0.0)


def test_letterbox_fit() -> None:
    ratio, (ox, oy) = mo.letterbox_fit((1280, 720), (640, 480))
    assert ratio == pytest.approx(1.5)
    assert (ox, oy) == pytest.approx((160.0, 0.0))

    ratio, (ox, oy) = mo.letterbox_fit((640, 960), (640, 480))
    assert ratio == pytest.approx(1.0)
    assert (ox, oy) == pytest.approx((0.0, 240.0))


def test_pose_identity_helper() -> None:
    p = Pose.identity()
    assert np.array_equal(p.apply([[1.0, 2.0, 3.0]]), [[1.0, 2.0, 3.0]])
