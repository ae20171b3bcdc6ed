from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from arcalib.core import matrix_ops
from arcalib.core.intrinsics import Intrinsics, Pose
from arcalib.errors import NoCalibration


class IntrinsicsSource(Protocol):
    @property
    def intrinsics(self) -> Intrinsics | None: ...


@dataclass(frozen=True, eq=False)
class ProjectionMatrix:
    """
    AR projection for one frame, in renderer layout (see `arcalib.core.matrix_ops`).

    `values()` gives the 16 floats in the order the renderer uploads them.
    """

    matrix: np.ndarray  # (4,4)

    def values(self) -> list[float]:
        return [float(v) for v in np.asarray(self.matrix, dtype=np.float64).reshape(-1).tolist()]

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        return matrix_ops.transform_points(self.matrix, points)


class ProjectionBuilder:
    """Turns the current intrinsics plus a per-frame pose into a projection matrix. Never caches."""

    def __init__(self, source: IntrinsicsSource) -> None:
        self.source = source

    def build(self, ratio: float, pose: Pose, view_matrix: np.ndarray | None = None) -> ProjectionMatrix:
        intrinsics = self.source.intrinsics
        if intrinsics is None:
            raise NoCalibration("projection requested before a calibration was computed or loaded")
        if view_matrix is None:
            view_matrix = matrix_ops.identity()
        m = matrix_ops.compute_projection_matrix(
            ratio,
            intrinsics.camera_matrix.values,
            pose.rotation,
            pose.translation,
            view_matrix,
        )
        return ProjectionMatrix(matrix=m)
