from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ChessboardSpec:
    """
    Planar chessboard described by its *inner* corner grid.

    `width` x `height` inner corners spaced `pitch_mm` apart; the board plane is Z=0.
    """

    width: int = 9
    height: int = 6
    pitch_mm: float = 25.0

    @property
    def pattern_size(self) -> tuple[int, int]:
        return (int(self.width), int(self.height))

    @property
    def n_corners(self) -> int:
        return int(self.width) * int(self.height)

    @property
    def size_mm(self) -> tuple[float, float]:
        return ((self.width - 1) * self.pitch_mm, (self.height - 1) * self.pitch_mm)

    def object_points(self) -> np.ndarray:
        """
        Corner template (N,3) in mm, row-major: for row j, column i -> (pitch*i, pitch*j, 0).

        Matches the scan order of OpenCV chessboard detections.
        """
        jj, ii = np.meshgrid(np.arange(self.height), np.arange(self.width), indexing="ij")
        pts = np.zeros((self.n_corners, 3), dtype=np.float64)
        pts[:, 0] = self.pitch_mm * ii.reshape(-1)
        pts[:, 1] = self.pitch_mm * jj.reshape(-1)
        return pts
