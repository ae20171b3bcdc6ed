from arcalib.api.projection import ProjectionBuilder, ProjectionMatrix
from arcalib.calib.session import CalibrationResult, CalibrationSession, DetectionResult
from arcalib.calib.store import CalibrationStore, JsonDirectoryStore, MemoryStore

__all__ = [
    "CalibrationSession",
    "CalibrationResult",
    "DetectionResult",
    "CalibrationStore",
    "JsonDirectoryStore",
    "MemoryStore",
    "ProjectionBuilder",
    "ProjectionMatrix",
]
