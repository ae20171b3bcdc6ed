from __future__ import annotations


class ArcalibError(Exception):
    pass


class InvalidDimension(ArcalibError, ValueError):
    pass


class ConfigValidationError(ArcalibError, ValueError):
    pass


class InsufficientSamples(ArcalibError):
    def __init__(self, have: int, need: int) -> None:
        super().__init__(f"need at least {need} captured samples to calibrate, have {have}")
        self.have = int(have)
        self.need = int(need)


class CalibrationFailed(ArcalibError):
    pass


class NoCalibration(ArcalibError):
    pass


class PersistenceUnavailable(ArcalibError):
    pass
