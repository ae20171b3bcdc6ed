from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from arcalib.errors import InvalidDimension


@dataclass(frozen=True)
class DistortionCoefficients:
    """
    Brown-Conrady lens distortion in OpenCV order (k1, k2, p1, p2, k3).

    Applied on normalized camera coordinates (x=X/Z, y=Y/Z).
    """

    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0

    @classmethod
    def from_values(cls, values) -> "DistortionCoefficients":
        v = np.asarray(values, dtype=np.float64).reshape(-1)
        if v.size != 5:
            raise InvalidDimension(f"distortion needs 5 coefficients, got {v.size}")
        return cls(*(float(x) for x in v.tolist()))

    def as_array(self) -> np.ndarray:
        return np.array([self.k1, self.k2, self.p1, self.p2, self.k3], dtype=np.float64)

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r2 = x * x + y * y
        r4 = r2 * r2
        r6 = r4 * r2
        radial = 1.0 + self.k1 * r2 + self.k2 * r4 + self.k3 * r6
        xy = x * y
        x_tan = 2.0 * self.p1 * xy + self.p2 * (r2 + 2.0 * x * x)
        y_tan = self.p1 * (r2 + 2.0 * y * y) + 2.0 * self.p2 * xy
        return x * radial + x_tan, y * radial + y_tan
