from __future__ import annotations


def test_public_api_exports() -> None:
    import arcalib

    assert hasattr(arcalib, "CalibrationSession")
    assert hasattr(arcalib, "ProjectionBuilder")
    assert hasattr(arcalib, "CalibrationStore")
    assert hasattr(arcalib, "compute_projection_matrix")
    assert hasattr(arcalib.errors, "NoCalibration")
