from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from dataclasses import dataclass, field

import numpy as np

from arcalib.calib.collaborators import Detector, PersistentStore, Solver
from arcalib.calib.samples import CorrespondenceSet, SampleCollector
from arcalib.calib.store import CalibrationStore
from arcalib.core.board import ChessboardSpec
from arcalib.core.intrinsics import Intrinsics, Pose
from arcalib.errors import CalibrationFailed, InsufficientSamples, InvalidDimension, NoCalibration, PersistenceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_MIN_SAMPLES = 5


@dataclass(frozen=True, eq=False)
class DetectionResult:
    """Per-frame outcome. `found=False` is the ordinary "no board in view" status."""

    found: bool
    corners: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))
    captured: bool = False


@dataclass(frozen=True, eq=False)
class CalibrationResult:
    intrinsics: Intrinsics
    rms_px: float
    per_sample_errors_px: np.ndarray
    poses: tuple[Pose, ...]
    persisted: bool


class CalibrationSession:
    """
    Detection -> sample capture -> solve -> persist, for one camera profile.

    The session owns the current intrinsics and every scratch object it gets back
    from the detector and solver; scratch is released on every exit path.
    """

    def __init__(
        self,
        *,
        detector: Detector,
        solver: Solver,
        store: CalibrationStore | PersistentStore,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        if int(min_samples) < 1:
            raise ValueError("min_samples must be >= 1")
        self.detector = detector
        self.solver = solver
        self.store = store if isinstance(store, CalibrationStore) else CalibrationStore(store)
        self.min_samples = int(min_samples)
        self.collector = SampleCollector()

        self.profile: str | None = None
        self.board: ChessboardSpec | None = None
        self._object_points: np.ndarray | None = None
        self._intrinsics: Intrinsics | None = None
        self._last_result: CalibrationResult | None = None
        self.persistence_error: PersistenceUnavailable | None = None

        self._solve_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_config(cls, config, *, detector: Detector | None = None, solver: Solver | None = None, store=None) -> "CalibrationSession":
        from arcalib.calib.opencv_backend import ChessboardDetector, OpenCVCalibrationSolver  # noqa: PLC0415
        from arcalib.calib.store import JsonDirectoryStore  # noqa: PLC0415

        session = cls(
            detector=detector or ChessboardDetector(config.detector.subpix, config.detector.subpix_window),
            solver=solver or OpenCVCalibrationSolver(),
            store=store if store is not None else JsonDirectoryStore(config.store_dir),
            min_samples=config.min_samples,
        )
        session.initialize(config.profile, config.board.width, config.board.height, config.board.pitch_mm)
        return session

    def __enter__(self) -> "CalibrationSession":
        return self

    def __exit__(self, *exc) -> None:
        self.teardown()

    # -- state --------------------------------------------------------------

    @property
    def intrinsics(self) -> Intrinsics | None:
        return self._intrinsics

    def require_intrinsics(self) -> Intrinsics:
        if self._intrinsics is None:
            raise NoCalibration(f"no calibration for profile {self.profile!r}; calibrate or load one first")
        return self._intrinsics

    @property
    def last_result(self) -> CalibrationResult | None:
        return self._last_result

    @property
    def object_points(self) -> np.ndarray:
        if self._object_points is None:
            raise RuntimeError("session is not initialized")
        return self._object_points

    @property
    def solving(self) -> bool:
        return self._solve_lock.locked()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("session has been torn down")

    # -- lifecycle ----------------------------------------------------------

    def initialize(self, profile: str, board_width: int, board_height: int, board_pitch: float) -> bool:
        """Set up the board template and try to restore a stored calibration. Returns True if one was loaded."""
        self._check_open()
        if int(board_width) < 2 or int(board_height) < 2 or float(board_pitch) <= 0.0:
            raise InvalidDimension("board needs >= 2x2 inner corners and a positive pitch")
        self.profile = str(profile)
        self.board = ChessboardSpec(width=int(board_width), height=int(board_height), pitch_mm=float(board_pitch))
        obj = self.board.object_points()
        obj.setflags(write=False)
        self._object_points = obj
        self.collector.reset()
        self._intrinsics = None
        self._last_result = None
        return self.reload()

    def reload(self) -> bool:
        self._check_open()
        if self.profile is None:
            raise RuntimeError("session is not initialized")
        try:
            loaded = self.store.load(self.profile)
        except PersistenceUnavailable as e:
            self.persistence_error = e
            logger.warning("Calibration store unavailable, continuing without it: %s", e)
            return False
        if loaded is None:
            logger.info("No stored calibration for profile %r", self.profile)
            return False
        self._intrinsics = loaded
        logger.info("Loaded calibration for profile %r (f=%.2f)", self.profile, loaded.camera_matrix.focal_length)
        return True

    def clear_calibration(self) -> bool:
        had = self._intrinsics is not None
        self._intrinsics = None
        self._last_result = None
        return had

    def teardown(self) -> None:
        """Release everything the session owns. Safe to call more than once."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            self.collector.reset()
            self._intrinsics = None
            self._last_result = None

    # -- per frame ----------------------------------------------------------

    def request_capture(self) -> bool:
        """Arm capture of the next detected board. Ignored (returns False) while a solve runs."""
        self._check_open()
        if self.solving:
            logger.info("Capture request ignored: calibration in progress")
            return False
        self.collector.arm()
        return True

    def process_frame(self, frame: np.ndarray) -> DetectionResult:
        self._check_open()
        board = self.board
        if board is None:
            raise RuntimeError("session is not initialized")

        with ExitStack() as scratch:
            detection = self.detector.find_board(frame, board.pattern_size)
            scratch.callback(detection.release)
            if not detection.found:
                return DetectionResult(found=False)

            corners = np.array(detection.corners, dtype=np.float64).reshape(-1, 2)
            if corners.shape[0] != board.n_corners:
                logger.debug("Detector returned %d corners, expected %d", corners.shape[0], board.n_corners)
                return DetectionResult(found=False)

        captured = False
        if self.collector.armed:
            if self._solve_lock.acquire(blocking=False):
                try:
                    captured = self.collector.on_detection(CorrespondenceSet(corners, self.object_points))
                finally:
                    self._solve_lock.release()
            else:
                logger.debug("Skipping capture while a calibration solve is running")
        corners.setflags(write=False)
        return DetectionResult(found=True, corners=corners, captured=captured)

    # -- solve --------------------------------------------------------------

    def calibrate(self, image_size: tuple[int, int]) -> Intrinsics:
        """
        Solve for intrinsics from the captured samples and persist them.

        On `InsufficientSamples` or `CalibrationFailed` any previous intrinsics are kept.
        """
        self._check_open()
        with self._solve_lock, ExitStack() as scratch:
            samples = self.collector.samples()
            if len(samples) < self.min_samples:
                raise InsufficientSamples(len(samples), self.min_samples)

            logger.info("Calibrating profile %r from %d samples", self.profile, len(samples))
            try:
                solved = self.solver.calibrate(
                    [s.object_points for s in samples],
                    [s.image_points for s in samples],
                    (int(image_size[0]), int(image_size[1])),
                )
            except CalibrationFailed:
                logger.warning("Calibration failed for profile %r", self.profile, exc_info=True)
                raise
            scratch.callback(solved.release)

            try:
                intrinsics = Intrinsics.from_arrays(solved.camera_matrix, solved.dist_coeffs)
            except InvalidDimension as e:
                raise CalibrationFailed(f"solver returned malformed intrinsics: {e}") from e
            with self._state_lock:
                if self._closed:
                    raise RuntimeError("session was torn down during calibration")
                persisted = self._persist(intrinsics)
                self._intrinsics = intrinsics
                self._last_result = CalibrationResult(
                    intrinsics=intrinsics,
                    rms_px=float(solved.rms_px),
                    per_sample_errors_px=np.array(solved.per_sample_errors_px, dtype=np.float64),
                    poses=tuple(solved.poses),
                    persisted=persisted,
                )
        logger.info("Calibration done: rms=%.4f px, persisted=%s", self._last_result.rms_px, persisted)
        return intrinsics

    def _persist(self, intrinsics: Intrinsics) -> bool:
        try:
            self.store.save(self.profile, intrinsics)
        except PersistenceUnavailable as e:
            self.persistence_error = e
            logger.warning("Calibration kept for this session only: %s", e)
            return False
        return True
