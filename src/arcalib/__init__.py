from arcalib import errors
from arcalib.api import (
    CalibrationResult,
    CalibrationSession,
    CalibrationStore,
    DetectionResult,
    JsonDirectoryStore,
    MemoryStore,
    ProjectionBuilder,
    ProjectionMatrix,
)
from arcalib.core.board import ChessboardSpec
from arcalib.core.intrinsics import CameraMatrix, Intrinsics, Pose
from arcalib.core.matrix_ops import compute_projection_matrix, letterbox_fit

__all__ = [
    "errors",
    "CalibrationSession",
    "CalibrationResult",
    "DetectionResult",
    "CalibrationStore",
    "JsonDirectoryStore",
    "MemoryStore",
    "ProjectionBuilder",
    "ProjectionMatrix",
    "ChessboardSpec",
    "CameraMatrix",
    "Intrinsics",
    "Pose",
    "compute_projection_matrix",
    "letterbox_fit",
]
