from __future__ import annotations

import json
from pathlib import Path

import pytest

from arcalib.config import ConfigValidationError, default_config, load_config, parse_config


def test_defaults() -> None:
    cfg = default_config()
    assert cfg.board.pattern_size == (9, 6)
    assert cfg.board.pitch_mm == 25.0
    assert cfg.profile == "default_camera"
    assert cfg.min_samples == 5
    assert cfg.detector.subpix is True


def test_parse_config_ok(tmp_path: Path) -> None:
    cfg = parse_config(
        {
            "schema_version": "arcalib.config.v0",
            "board": {"width": 7, "height": 5, "pitch_mm": 30.0},
            "profile": "webcam",
            "min_samples": 8,
            "store_dir": str(tmp_path),
            "detector": {"subpix": False, "subpix_window": 7},
        }
    )
    assert cfg.board.n_corners == 35
    assert cfg.profile == "webcam"
    assert cfg.min_samples == 8
    assert cfg.store_dir == tmp_path
    assert cfg.detector.subpix is False


@pytest.mark.parametrize(
    "data",
    [
        {"schema_version": "other"},
        {"board": {"pitch_mm": 0.0}},
        {"board": {"width": 1}},
        {"profile": "a/b"},
        {"profile": ".."},
        {"profile": ""},
        {"min_samples": 0},
        {"detector": {"subpix_window": 4}},
    ],
)
def test_parse_config_rejects(data) -> None:
    with pytest.raises(ConfigValidationError):
        parse_config(data)


def test_load_config(tmp_path: Path) -> None:
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"profile": "bench"}), encoding="utf-8")
    assert load_config(p).profile == "bench"

    p.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigValidationError):
        load_config(p)
