from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from arcalib.calib.collaborators import BoardDetection, SolveResult
from arcalib.core.intrinsics import Pose
from arcalib.errors import CalibrationFailed

MIN_POINTS_PER_SAMPLE = 4


def to_gray_u8(frame: np.ndarray) -> np.ndarray:
    img = np.asarray(frame)
    if img.ndim == 3:
        code = cv2.COLOR_BGRA2GRAY if img.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        img = cv2.cvtColor(img, code)
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    return img


class ChessboardDetector:
    """`cv2.findChessboardCorners` with optional sub-pixel refinement."""

    def __init__(self, subpix: bool = True, subpix_window: int = 11) -> None:
        self.subpix = bool(subpix)
        self.subpix_window = int(subpix_window)

    def find_board(self, frame: np.ndarray, pattern_size: tuple[int, int]) -> BoardDetection:
        gray = to_gray_u8(frame)
        flags = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
        found, corners = cv2.findChessboardCorners(gray, tuple(int(v) for v in pattern_size), None, flags)
        if not found or corners is None:
            return BoardDetection(found=False)

        if self.subpix:
            half = self.subpix_window // 2
            criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 1e-3)
            corners = cv2.cornerSubPix(gray, corners, (half, half), (-1, -1), criteria)
        return BoardDetection(found=True, corners=np.asarray(corners, dtype=np.float64).reshape(-1, 2))


class OpenCVCalibrationSolver:
    """Pinhole + 5-coefficient Brown model fitted with `cv2.calibrateCamera`."""

    def __init__(self, flags: int = 0, max_iter: int = 100, eps: float = 1e-9) -> None:
        self.flags = int(flags)
        self.criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, int(max_iter), float(eps))

    def calibrate(
        self,
        object_point_sets: Sequence[np.ndarray],
        image_point_sets: Sequence[np.ndarray],
        image_size: tuple[int, int],
    ) -> SolveResult:
        if len(object_point_sets) == 0 or len(object_point_sets) != len(image_point_sets):
            raise CalibrationFailed("need matching, non-empty object and image point sets")

        obj = [np.asarray(o, dtype=np.float32).reshape(-1, 1, 3) for o in object_point_sets]
        img = [np.asarray(i, dtype=np.float32).reshape(-1, 1, 2) for i in image_point_sets]
        for k, (o, i) in enumerate(zip(obj, img)):
            if o.shape[0] != i.shape[0]:
                raise CalibrationFailed(f"sample {k}: {o.shape[0]} object points vs {i.shape[0]} image points")
            if o.shape[0] < MIN_POINTS_PER_SAMPLE:
                raise CalibrationFailed(f"sample {k}: need >= {MIN_POINTS_PER_SAMPLE} correspondences")

        w, h = int(image_size[0]), int(image_size[1])
        try:
            rms, K, dist, rvecs, tvecs = cv2.calibrateCamera(
                obj, img, (w, h), None, None, flags=self.flags, criteria=self.criteria
            )
        except cv2.error as e:
            raise CalibrationFailed(f"OpenCV calibration failed: {e}") from e

        K = np.asarray(K, dtype=np.float64).reshape(3, 3)
        dist = np.asarray(dist, dtype=np.float64).reshape(-1)
        if dist.size < 5:
            dist = np.concatenate([dist, np.zeros(5 - dist.size)])
        dist = dist[:5]
        if not (np.all(np.isfinite(K)) and np.all(np.isfinite(dist)) and np.isfinite(rms)):
            raise CalibrationFailed("calibration produced non-finite parameters")
        if K[0, 0] <= 0.0 or K[1, 1] <= 0.0:
            raise CalibrationFailed("calibration produced a non-positive focal length")

        errors = []
        poses = []
        for o, i, rvec, tvec in zip(obj, img, rvecs, tvecs):
            proj, _ = cv2.projectPoints(o, rvec, tvec, K, dist)
            d = proj.reshape(-1, 2).astype(np.float64) - i.reshape(-1, 2).astype(np.float64)
            errors.append(float(np.sqrt(np.mean(np.sum(d * d, axis=1)))))
            R, _ = cv2.Rodrigues(rvec)
            poses.append(Pose(R, np.asarray(tvec, dtype=np.float64).reshape(3)))

        return SolveResult(
            camera_matrix=K,
            dist_coeffs=dist,
            rms_px=float(rms),
            per_sample_errors_px=np.asarray(errors, dtype=np.float64),
            poses=poses,
        )
