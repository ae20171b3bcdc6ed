from __future__ import annotations

import cv2
import numpy as np

from arcalib.core.board import ChessboardSpec
from arcalib.core.intrinsics import Intrinsics, Pose


def chessboard_texture(board: ChessboardSpec, pixels_per_square: int = 40, margin_squares: float = 1.0) -> np.ndarray:
    """
    uint8 raster of a chessboard with `width` x `height` inner corners and a white margin.

    The top-left square is black, which puts inner corner (0,0) at the first black/white crossing.
    """
    s = int(pixels_per_square)
    m = int(round(margin_squares * s))
    nx, ny = board.width + 1, board.height + 1
    img = np.full((ny * s + 2 * m, nx * s + 2 * m), 255, dtype=np.uint8)
    for r in range(ny):
        for c in range(nx):
            if (r + c) % 2 == 0:
                img[m + r * s : m + (r + 1) * s, m + c * s : m + (c + 1) * s] = 0
    return img


def board_to_texture(board: ChessboardSpec, pixels_per_square: int = 40, margin_squares: float = 1.0) -> np.ndarray:
    """Affine map (3,3) from board-plane mm to texture pixel coordinates (pixel centres at integers)."""
    s = float(pixels_per_square)
    m = float(int(round(margin_squares * pixels_per_square)))
    k = s / float(board.pitch_mm)
    off = m + s - 0.5
    return np.array([[k, 0.0, off], [0.0, k, off], [0.0, 0.0, 1.0]], dtype=np.float64)


def render_chessboard(
    intrinsics: Intrinsics,
    pose: Pose,
    board: ChessboardSpec,
    image_size: tuple[int, int],
    *,
    pixels_per_square: int = 40,
    background: int = 127,
) -> np.ndarray:
    """
    Render a grayscale view of the board through a pinhole camera (lens distortion is not simulated).
    """
    w, h = int(image_size[0]), int(image_size[1])
    tex = chessboard_texture(board, pixels_per_square)
    R = pose.rotation
    plane_to_image = intrinsics.K() @ np.column_stack([R[:, 0], R[:, 1], pose.translation])
    H = plane_to_image @ np.linalg.inv(board_to_texture(board, pixels_per_square))
    return cv2.warpPerspective(
        tex,
        H,
        (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=int(background),
    )
