from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from arcalib.calib.store import CalibrationStore, JsonDirectoryStore, MemoryStore, calibration_key
from arcalib.core.intrinsics import Intrinsics
from arcalib.errors import PersistenceUnavailable


def _intrinsics(seed: int = 0) -> Intrinsics:
    rng = np.random.default_rng(seed)
    K = np.array(
        [[rng.uniform(500, 1500), 0.0, rng.uniform(200, 400)], [0.0, rng.uniform(500, 1500), rng.uniform(150, 300)], [0.0, 0.0, 1.0]]
    )
    return Intrinsics.from_arrays(K, rng.normal(scale=0.05, size=5))


class _BrokenStore:
    def get(self, key: str) -> str | None:
        raise OSError("disk gone")

    def set(self, key: str, value: str) -> None:
        raise OSError("read-only")


def test_memory_round_trip() -> None:
    store = CalibrationStore(MemoryStore())
    intr = _intrinsics(1)
    assert store.save("cam", intr) is True
    loaded = store.load("cam")
    assert loaded is not None
    assert loaded.allclose(intr, atol=1e-9)
    assert np.array_equal(loaded.K(), intr.K())


def test_missing_profile_loads_as_none() -> None:
    assert CalibrationStore(MemoryStore()).load("nobody") is None


def test_payload_format_and_key() -> None:
    mem = MemoryStore()
    intr = _intrinsics(2)
    CalibrationStore(mem).save("front", intr)
    assert calibration_key("front") == "front/calibration"
    payload = json.loads(mem.data["front/calibration"])
    assert set(payload) == {"cameraMatrix", "distCoeffs"}
    assert len(payload["cameraMatrix"]) == 9
    assert len(payload["distCoeffs"]) == 5
    assert payload["cameraMatrix"][2] == intr.camera_matrix.cx


def test_json_directory_round_trip_and_profiles(tmp_path: Path) -> None:
    store = CalibrationStore(JsonDirectoryStore(tmp_path / "store"))
    a, b = _intrinsics(3), _intrinsics(4)
    store.save("left", a)
    store.save("right", b)
    store.save("left", b)

    assert (tmp_path / "store" / "left" / "calibration.json").exists()
    assert store.load("left").allclose(b)
    assert store.load("right").allclose(b)
    assert store.load("middle") is None
    assert not list((tmp_path / "store" / "left").glob("*.tmp"))


def test_unreadable_payload_is_persistence_error() -> None:
    mem = MemoryStore({"cam/calibration": "{not json"})
    with pytest.raises(PersistenceUnavailable):
        CalibrationStore(mem).load("cam")

    mem = MemoryStore({"cam/calibration": json.dumps({"cameraMatrix": [1.0, 2.0], "distCoeffs": [0.0] * 5})})
    with pytest.raises(PersistenceUnavailable):
        CalibrationStore(mem).load("cam")


def test_store_io_failures_are_persistence_errors() -> None:
    store = CalibrationStore(_BrokenStore())
    with pytest.raises(PersistenceUnavailable):
        store.load("cam")
    with pytest.raises(PersistenceUnavailable):
        store.save("cam", _intrinsics())


def test_json_directory_rejects_escaping_keys(tmp_path: Path) -> None:
    store = JsonDirectoryStore(tmp_path)
    with pytest.raises(ValueError):
        store.path_for("../calibration")
    with pytest.raises(ValueError):
        store.path_for("")


def test_rejected_keys_are_persistence_errors(tmp_path: Path) -> None:
    store = CalibrationStore(JsonDirectoryStore(tmp_path))
    with pytest.raises(PersistenceUnavailable):
        store.load("..")
    with pytest.raises(PersistenceUnavailable):
        store.save(".", _intrinsics())
    assert not list(tmp_path.rglob("*.json"))
