"""
4x4 homogeneous transforms for AR overlay rendering.

Layout: every 4x4 array here is stored so that its row-major flattening is the
16-value element order the renderer consumes (column-major math, the layout of
gl-matrix style ``mat4``). Read as a numpy array this is the row-vector
convention ``v_out = v_in @ M``: translations sit in the last row and the
perspective term at ``[2, 3]``.

``compose(a, b)`` is the renderer's product ``a x b``; ``b`` acts first.
"""

from __future__ import annotations

import numpy as np

from arcalib.errors import InvalidDimension


def _mat4(values) -> np.ndarray:
    m = np.asarray(values, dtype=np.float64)
    if m.size != 16:
        raise InvalidDimension(f"4x4 matrix needs 16 values, got {m.size}")
    return m.reshape(4, 4)


def _mat3(values) -> np.ndarray:
    m = np.asarray(values, dtype=np.float64)
    if m.size != 9:
        raise InvalidDimension(f"3x3 matrix needs 9 values, got {m.size}")
    return m.reshape(3, 3)


def _vec3(values) -> np.ndarray:
    v = np.asarray(values, dtype=np.float64)
    if v.size != 3:
        raise InvalidDimension(f"3-vector needs 3 values, got {v.size}")
    return v.reshape(3)


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def compose(a, b) -> np.ndarray:
    """Renderer product ``a x b`` (``b`` applied first)."""
    return _mat4(b) @ _mat4(a)


def flip_yz() -> np.ndarray:
    """Vision convention (Y down, Z forward) to renderer convention (Y up, Z backward)."""
    return np.diag([1.0, -1.0, -1.0, 1.0])


def rotation_to_homogeneous(rotation) -> np.ndarray:
    """Embed a row-major 3x3 rotation: its columns become the rows of the upper-left block."""
    r = _mat3(rotation)
    m = identity()
    m[:3, :3] = r.T
    return m


def translation_to_homogeneous(translation) -> np.ndarray:
    m = identity()
    m[3, :3] = _vec3(translation)
    return m


def perspective_divide(focal_length: float) -> np.ndarray:
    """
    First-order pinhole divide: w_out = z / f.

    Only [2, 3] = 1/f; the w input is dropped ([3, 3] = 0).
    """
    f = float(focal_length)
    if not np.isfinite(f) or f == 0.0:
        raise InvalidDimension(f"focal length must be finite and non-zero, got {f}")
    m = identity()
    m[2, 3] = 1.0 / f
    m[3, 3] = 0.0
    return m


def viewport_scale(ratio: float, cx: float, cy: float) -> np.ndarray:
    """diag(r, r, r, 1) with the principal point offset (cx*r, cy*r, 0, 1) in the last row."""
    r = float(ratio)
    m = np.diag([r, r, r, 1.0])
    m[3, 0] = cx * r
    m[3, 1] = cy * r
    return m


def compute_projection_matrix(ratio: float, camera_matrix, rotation, translation, view_matrix) -> np.ndarray:
    """
    Build the AR projection matrix from intrinsics, a per-frame pose and the scene view matrix.

    The composition order is fixed; any reordering misaligns the overlay:

      flip -> rotation -> translation -> view -> perspective -> viewport scale

    Returns a (4,4) array in renderer layout (see module docstring).
    """
    K = _mat3(camera_matrix)

    m = compose(rotation_to_homogeneous(rotation), flip_yz())
    m = compose(translation_to_homogeneous(translation), m)
    m = compose(_mat4(view_matrix), m)
    m = compose(perspective_divide(K[0, 0]), m)
    m = compose(viewport_scale(ratio, K[0, 2], K[1, 2]), m)
    return m


def transform_points(matrix, points) -> np.ndarray:
    """
    Push (N,3) points through a renderer-layout matrix and return (N,3) after the w divide.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    hom = np.concatenate([pts, np.ones((pts.shape[0], 1), dtype=np.float64)], axis=1)
    out = hom @ _mat4(matrix)
    return out[:, :3] / out[:, 3:4]


def letterbox_fit(viewport_size: tuple[float, float], image_size: tuple[float, float]) -> tuple[float, tuple[float, float]]:
    """
    Largest uniform scale that fits an image inside a viewport, and the centring offset.

    Returns (ratio, (offset_x, offset_y)).
    """
    vw, vh = (float(v) for v in viewport_size)
    iw, ih = (float(v) for v in image_size)
    if iw <= 0.0 or ih <= 0.0:
        raise InvalidDimension("image size must be > 0")
    ratio = min(vw / iw, vh / ih)
    return ratio, ((vw - iw * ratio) / 2.0, (vh - ih * ratio) / 2.0)
