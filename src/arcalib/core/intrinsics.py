from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from arcalib.core.distortion import DistortionCoefficients
from arcalib.errors import InvalidDimension


def as_fixed(values, shape: tuple[int, ...], name: str) -> np.ndarray:
    """Copy `values` into a read-only float64 array of exactly `shape`."""
    arr = np.array(values, dtype=np.float64)
    if arr.size != int(np.prod(shape)):
        raise InvalidDimension(f"{name} needs {int(np.prod(shape))} values, got {arr.size}")
    arr = arr.reshape(shape)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CameraMatrix:
    """3x3 pinhole camera matrix K (row-major)."""

    values: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", as_fixed(self.values, (3, 3), "camera matrix"))

    @classmethod
    def from_params(cls, fx: float, fy: float, cx: float, cy: float) -> "CameraMatrix":
        return cls(np.array([[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64))

    @property
    def fx(self) -> float:
        return float(self.values[0, 0])

    @property
    def fy(self) -> float:
        return float(self.values[1, 1])

    @property
    def cx(self) -> float:
        return float(self.values[0, 2])

    @property
    def cy(self) -> float:
        return float(self.values[1, 2])

    @property
    def focal_length(self) -> float:
        return self.fx

    def flat(self) -> list[float]:
        return [float(v) for v in self.values.reshape(-1).tolist()]


@dataclass(frozen=True, eq=False)
class Pose:
    """Rigid transform X_cam = R X_obj + t, as estimated per frame by a pose estimator."""

    rotation: np.ndarray  # (3,3)
    translation: np.ndarray  # (3,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rotation", as_fixed(self.rotation, (3, 3), "rotation"))
        object.__setattr__(self, "translation", as_fixed(self.translation, (3,), "translation"))

    @classmethod
    def identity(cls) -> "Pose":
        return cls(np.eye(3), np.zeros(3))

    def apply(self, points: np.ndarray) -> np.ndarray:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return pts @ self.rotation.T + self.translation


@dataclass(frozen=True, eq=False)
class Intrinsics:
    camera_matrix: CameraMatrix
    dist_coeffs: DistortionCoefficients = DistortionCoefficients()

    @classmethod
    def from_arrays(cls, camera_matrix, dist_coeffs) -> "Intrinsics":
        return cls(CameraMatrix(camera_matrix), DistortionCoefficients.from_values(dist_coeffs))

    def allclose(self, other: "Intrinsics", atol: float = 1e-9) -> bool:
        return bool(
            np.allclose(self.camera_matrix.values, other.camera_matrix.values, rtol=0.0, atol=atol)
            and np.allclose(self.dist(), other.dist(), rtol=0.0, atol=atol)
        )

    def K(self) -> np.ndarray:
        return np.array(self.camera_matrix.values, dtype=np.float64)

    def dist(self) -> np.ndarray:
        return self.dist_coeffs.as_array()

    def project(self, pose: Pose, object_points: np.ndarray) -> np.ndarray:
        """
        Project object-space points (N,3) to pixels (N,2) through pose, distortion and K.

        Points at or behind the camera plane come back as NaN.
        """
        XYZ = pose.apply(object_points)
        Z = XYZ[:, 2]
        uv = np.full((XYZ.shape[0], 2), np.nan, dtype=np.float64)
        good = np.isfinite(Z) & (Z > 1e-12)
        if not np.any(good):
            return uv
        xd, yd = self.dist_coeffs.distort(XYZ[good, 0] / Z[good], XYZ[good, 1] / Z[good])
        K = self.camera_matrix
        uv[good, 0] = K.fx * xd + float(K.values[0, 1]) * yd + K.cx
        uv[good, 1] = K.fy * yd + K.cy
        return uv

    def reprojection_rms(self, pose: Pose, object_points: np.ndarray, image_points: np.ndarray) -> float:
        uv = self.project(pose, object_points)
        obs = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
        if uv.shape != obs.shape:
            raise InvalidDimension("object and image point counts differ")
        d2 = np.sum((uv - obs) ** 2, axis=1)
        return float(np.sqrt(np.mean(d2)))
