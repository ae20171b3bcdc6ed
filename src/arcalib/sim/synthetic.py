from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from arcalib.calib.collaborators import BoardDetection
from arcalib.core.board import ChessboardSpec
from arcalib.core.intrinsics import CameraMatrix, Intrinsics, Pose


def default_camera(width: int = 640, height: int = 480, f_px: float = 800.0) -> Intrinsics:
    return Intrinsics(CameraMatrix.from_params(f_px, f_px, (width - 1) / 2.0, (height - 1) / 2.0))


def board_pose(board: ChessboardSpec, *, euler_xyz_deg, distance_mm: float, offset_mm=(0.0, 0.0)) -> Pose:
    """
    Pose that puts the board centre at (offset_x, offset_y, distance) in the camera frame,
    tilted by intrinsic xyz Euler angles.
    """
    R = Rotation.from_euler("xyz", np.asarray(euler_xyz_deg, dtype=np.float64), degrees=True).as_matrix()
    w_mm, h_mm = board.size_mm
    centre = np.array([w_mm / 2.0, h_mm / 2.0, 0.0], dtype=np.float64)
    target = np.array([float(offset_mm[0]), float(offset_mm[1]), float(distance_mm)], dtype=np.float64)
    return Pose(R, target - R @ centre)


def synthetic_poses(
    n: int,
    board: ChessboardSpec,
    seed: int = 0,
    *,
    max_tilt_deg: float = 25.0,
    distance_mm: tuple[float, float] = (550.0, 750.0),
    max_offset_mm: float = 30.0,
) -> list[Pose]:
    """
    Well-spread board poses for calibration: tilts alternate in sign around x and y
    so that no two consecutive views share an orientation.
    """
    rng = np.random.default_rng(seed)
    poses = []
    for k in range(int(n)):
        sx = 1.0 if k % 2 == 0 else -1.0
        sy = 1.0 if (k // 2) % 2 == 0 else -1.0
        ax = sx * rng.uniform(0.4, 1.0) * max_tilt_deg
        ay = sy * rng.uniform(0.4, 1.0) * max_tilt_deg
        az = rng.uniform(-10.0, 10.0)
        poses.append(
            board_pose(
                board,
                euler_xyz_deg=(ax, ay, az),
                distance_mm=rng.uniform(*distance_mm),
                offset_mm=rng.uniform(-max_offset_mm, max_offset_mm, size=2),
            )
        )
    return poses


def synthetic_detections(
    intrinsics: Intrinsics,
    board: ChessboardSpec,
    poses: Sequence[Pose],
    *,
    noise_px: float = 0.0,
    seed: int = 0,
) -> list[np.ndarray]:
    rng = np.random.default_rng(seed)
    obj = board.object_points()
    out = []
    for pose in poses:
        uv = intrinsics.project(pose, obj)
        if noise_px > 0.0:
            uv = uv + rng.normal(scale=float(noise_px), size=uv.shape)
        out.append(uv)
    return out


class ReplayDetector:
    """
    Detector stand-in that hands out precomputed corners, one entry per processed frame
    (`None` entries replay a miss). Frame content is ignored.
    """

    def __init__(self, corners: Sequence[np.ndarray | None]) -> None:
        self._queue = list(corners)
        self._cursor = 0
        self.issued: list[BoardDetection] = []

    def find_board(self, frame: np.ndarray, pattern_size: tuple[int, int]) -> BoardDetection:
        if self._cursor >= len(self._queue):
            det = BoardDetection(found=False)
        else:
            c = self._queue[self._cursor]
            self._cursor += 1
            if c is None:
                det = BoardDetection(found=False)
            else:
                det = BoardDetection(found=True, corners=np.array(c, dtype=np.float64).reshape(-1, 2))
        self.issued.append(det)
        return det
