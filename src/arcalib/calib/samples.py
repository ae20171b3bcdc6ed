from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from arcalib.errors import InvalidDimension

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CorrespondenceSet:
    """
    One calibration sample: detected corners (N,2) paired index-for-index with the
    board template (N,3). Both arrays are read-only copies.
    """

    image_points: np.ndarray
    object_points: np.ndarray

    def __post_init__(self) -> None:
        img = np.array(self.image_points, dtype=np.float64).reshape(-1, 2)
        obj = np.array(self.object_points, dtype=np.float64).reshape(-1, 3)
        if img.shape[0] != obj.shape[0]:
            raise InvalidDimension(f"{img.shape[0]} image points vs {obj.shape[0]} object points")
        img.setflags(write=False)
        obj.setflags(write=False)
        object.__setattr__(self, "image_points", img)
        object.__setattr__(self, "object_points", obj)

    def __len__(self) -> int:
        return int(self.image_points.shape[0])


class SampleCollector:
    """
    Ordered correspondence sets plus a one-shot "armed" flag.

    Idle --arm()--> Armed --on_detection()--> Idle (sample appended)
    """

    def __init__(self) -> None:
        self._samples: list[CorrespondenceSet] = []
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        self._armed = True

    def on_detection(self, correspondences: CorrespondenceSet) -> bool:
        if not self._armed:
            return False
        self._samples.append(correspondences)
        self._armed = False
        logger.info("Captured calibration sample %d (%d corners)", len(self._samples), len(correspondences))
        return True

    def count(self) -> int:
        return len(self._samples)

    def samples(self) -> tuple[CorrespondenceSet, ...]:
        return tuple(self._samples)

    def reset(self) -> None:
        self._samples.clear()
        self._armed = False
