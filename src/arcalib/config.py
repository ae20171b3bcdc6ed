from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from arcalib.core.board import ChessboardSpec
from arcalib.errors import ConfigValidationError

SCHEMA_VERSION = "arcalib.config.v0"
DEFAULT_PROFILE = "default_camera"
DEFAULT_STORE_DIR = Path.home() / ".arcalib"


@dataclass(frozen=True)
class DetectorConfig:
    subpix: bool = True
    subpix_window: int = 11


@dataclass(frozen=True)
class SessionConfig:
    board: ChessboardSpec = field(default_factory=ChessboardSpec)
    profile: str = DEFAULT_PROFILE
    min_samples: int = 5
    store_dir: Path = DEFAULT_STORE_DIR
    detector: DetectorConfig = field(default_factory=DetectorConfig)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def check_profile(profile: str) -> str:
    profile = str(profile)
    _require(bool(profile) and "/" not in profile and profile not in (".", ".."), "profile must be a non-empty name without '/'")
    return profile


def default_config() -> SessionConfig:
    return SessionConfig()


def load_config(path: Path) -> SessionConfig:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigValidationError(f"{path}: invalid JSON ({e})") from e
    return parse_config(data)


def parse_config(data: dict[str, Any]) -> SessionConfig:
    _require(isinstance(data, dict), "config must be a JSON object")
    schema_version = data.get("schema_version", SCHEMA_VERSION)
    _require(schema_version == SCHEMA_VERSION, f"schema_version must be {SCHEMA_VERSION}")

    board = data.get("board", {})
    _require(isinstance(board, dict), "board must be an object")
    width = int(board.get("width", 9))
    height = int(board.get("height", 6))
    pitch_mm = float(board.get("pitch_mm", 25.0))
    _require(width >= 2 and height >= 2, "board.width and board.height must be >= 2 (inner corners)")
    _require(pitch_mm > 0.0, "board.pitch_mm must be > 0")

    profile = check_profile(data.get("profile", DEFAULT_PROFILE))

    min_samples = int(data.get("min_samples", 5))
    _require(min_samples >= 1, "min_samples must be >= 1")

    store_dir = Path(str(data.get("store_dir", DEFAULT_STORE_DIR))).expanduser()

    det = data.get("detector", {})
    _require(isinstance(det, dict), "detector must be an object")
    subpix = bool(det.get("subpix", True))
    subpix_window = int(det.get("subpix_window", 11))
    _require(subpix_window >= 3 and subpix_window % 2 == 1, "detector.subpix_window must be an odd integer >= 3")

    return SessionConfig(
        board=ChessboardSpec(width=width, height=height, pitch_mm=pitch_mm),
        profile=profile,
        min_samples=min_samples,
        store_dir=store_dir,
        detector=DetectorConfig(subpix=subpix, subpix_window=subpix_window),
    )
