"""Contracts for the external vision capabilities the calibration core drives."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

import numpy as np

from arcalib.core.intrinsics import Pose


@dataclass
class BoardDetection:
    """
    Raw detector output for one frame. Owned by whoever called the detector,
    which must `release()` it once the corners have been consumed.
    """

    found: bool
    corners: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))

    def release(self) -> None:
        self.corners = np.zeros((0, 2), dtype=np.float64)


@dataclass
class SolveResult:
    camera_matrix: np.ndarray  # (3,3)
    dist_coeffs: np.ndarray  # (5,)
    rms_px: float
    per_sample_errors_px: np.ndarray  # (S,)
    poses: list[Pose] = field(default_factory=list)

    def release(self) -> None:
        self.poses = []


class Detector(Protocol):
    def find_board(self, frame: np.ndarray, pattern_size: tuple[int, int]) -> BoardDetection:
        """
        Locate the inner chessboard corners.

        Corners must come back in row-major scan order matching the board template.
        """
        ...


class Solver(Protocol):
    def calibrate(
        self,
        object_point_sets: Sequence[np.ndarray],
        image_point_sets: Sequence[np.ndarray],
        image_size: tuple[int, int],
    ) -> SolveResult:
        """Raise `CalibrationFailed` when the input is degenerate or the fit does not converge."""
        ...


class PersistentStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...
