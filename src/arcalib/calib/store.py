from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from arcalib.calib.collaborators import PersistentStore
from arcalib.core.intrinsics import Intrinsics
from arcalib.errors import InvalidDimension, PersistenceUnavailable

logger = logging.getLogger(__name__)


def calibration_key(profile: str) -> str:
    return f"{profile}/calibration"


class MemoryStore:
    """Dict-backed key/value store (one process lifetime)."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[str(key)] = str(value)


class JsonDirectoryStore:
    """
    One file per key under `root`: key ``cam/calibration`` lives in ``root/cam/calibration.json``.

    Writes go to a temporary sibling first and are moved into place with ``os.replace``,
    so readers never observe a partial value.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, key: str) -> Path:
        parts = [p for p in str(key).split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise ValueError(f"invalid store key: {key!r}")
        return self.root.joinpath(*parts[:-1], parts[-1] + ".json")

    def get(self, key: str) -> str | None:
        p = self.path_for(key)
        try:
            return p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceUnavailable(f"cannot read {p}: {e}") from e

    def set(self, key: str, value: str) -> None:
        p = self.path_for(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=p.name, suffix=".tmp", dir=p.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp, p)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceUnavailable(f"cannot write {p}: {e}") from e


def intrinsics_to_payload(intrinsics: Intrinsics) -> dict[str, Any]:
    return {
        "cameraMatrix": intrinsics.camera_matrix.flat(),
        "distCoeffs": [float(v) for v in intrinsics.dist().tolist()],
    }


def intrinsics_from_payload(payload: dict[str, Any]) -> Intrinsics:
    if not isinstance(payload, dict) or "cameraMatrix" not in payload or "distCoeffs" not in payload:
        raise ValueError("calibration payload needs cameraMatrix and distCoeffs")
    return Intrinsics.from_arrays(payload["cameraMatrix"], payload["distCoeffs"])


class CalibrationStore:
    """Serialize camera intrinsics into a named slot of a key/value store."""

    def __init__(self, store: PersistentStore) -> None:
        self.store = store

    def load(self, profile: str) -> Intrinsics | None:
        key = calibration_key(profile)
        try:
            raw = self.store.get(key)
        except (OSError, ValueError) as e:
            raise PersistenceUnavailable(f"cannot read {key}: {e}") from e
        if raw is None:
            return None
        try:
            return intrinsics_from_payload(json.loads(raw))
        except (ValueError, InvalidDimension) as e:
            raise PersistenceUnavailable(f"stored calibration {key} is unreadable: {e}") from e

    def save(self, profile: str, intrinsics: Intrinsics) -> bool:
        key = calibration_key(profile)
        value = json.dumps(intrinsics_to_payload(intrinsics))
        try:
            self.store.set(key, value)
        except (OSError, ValueError) as e:
            raise PersistenceUnavailable(f"cannot write {key}: {e}") from e
        logger.info("Saved calibration for profile %r", profile)
        return True
