from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import numpy as np

from arcalib.api import CalibrationSession, CalibrationStore, JsonDirectoryStore, ProjectionBuilder
from arcalib.calib.store import intrinsics_to_payload
from arcalib.config import SessionConfig, check_profile, default_config, load_config
from arcalib.core.image_io import list_frames, load_frame_gray, save_frame
from arcalib.core.intrinsics import Pose
from arcalib.errors import ArcalibError
from arcalib.sim.chessboard import render_chessboard
from arcalib.sim.synthetic import default_camera, synthetic_poses

logger = logging.getLogger(__name__)


def _config_from_args(args: argparse.Namespace) -> SessionConfig:
    cfg = load_config(args.config) if getattr(args, "config", None) else default_config()
    updates = {}
    if getattr(args, "profile", None):
        updates["profile"] = check_profile(args.profile)
    if getattr(args, "store_dir", None):
        updates["store_dir"] = args.store_dir
    if getattr(args, "min_samples", None):
        updates["min_samples"] = args.min_samples
    if updates:
        cfg = replace(cfg, **updates)
    return cfg


def run_calibrate(cfg: SessionConfig, frames_dir: Path) -> dict:
    paths = list_frames(frames_dir)
    if not paths:
        raise FileNotFoundError(f"no image frames in {frames_dir}")

    with CalibrationSession.from_config(cfg) as session:
        image_size = None
        for p in paths:
            frame = load_frame_gray(p)
            image_size = (frame.shape[1], frame.shape[0])
            session.request_capture()
            result = session.process_frame(frame)
            logger.info("%s: %s", p.name, "captured" if result.captured else "no board")

        session.calibrate(image_size)
        res = session.last_result
        return {
            "profile": cfg.profile,
            "image_size": list(image_size),
            "samples": session.collector.count(),
            "rms_px": res.rms_px,
            "per_sample_errors_px": res.per_sample_errors_px.tolist(),
            "persisted": res.persisted,
            **intrinsics_to_payload(res.intrinsics),
        }


def run_show(cfg: SessionConfig) -> dict:
    intrinsics = CalibrationStore(JsonDirectoryStore(cfg.store_dir)).load(cfg.profile)
    if intrinsics is None:
        raise FileNotFoundError(f"no stored calibration for profile {cfg.profile!r} in {cfg.store_dir}")
    return {"profile": cfg.profile, **intrinsics_to_payload(intrinsics)}


def run_projection(cfg: SessionConfig, pose_path: Path, ratio: float, view_path: Path | None) -> list[float]:
    pose_doc = json.loads(Path(pose_path).read_text(encoding="utf-8"))
    pose = Pose(pose_doc["rotation"], pose_doc["translation"])
    view = None
    if view_path is not None:
        view = np.asarray(json.loads(Path(view_path).read_text(encoding="utf-8")), dtype=np.float64)

    with CalibrationSession.from_config(cfg) as session:
        return ProjectionBuilder(session).build(ratio, pose, view).values()


def run_generate_synthetic(cfg: SessionConfig, out: Path, frames: int, seed: int, width: int, height: int) -> Path:
    camera = default_camera(width, height)
    poses = synthetic_poses(frames, cfg.board, seed=seed, distance_mm=(650.0, 800.0), max_offset_mm=20.0)
    out.mkdir(parents=True, exist_ok=True)
    for k, pose in enumerate(poses):
        save_frame(out / f"{k:06d}.png", render_chessboard(camera, pose, cfg.board, (width, height)))

    truth = {
        "image_size": [width, height],
        "board": {"width": cfg.board.width, "height": cfg.board.height, "pitch_mm": cfg.board.pitch_mm},
        **intrinsics_to_payload(camera),
        "poses": [{"rotation": p.rotation.tolist(), "translation": p.translation.tolist()} for p in poses],
    }
    truth_path = out / "truth.json"
    truth_path.write_text(json.dumps(truth, indent=2), encoding="utf-8")
    return truth_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="arcalib")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, default=None, help="JSON config (arcalib.config.v0).")
        p.add_argument("--profile", type=str, default=None, help="Calibration profile name.")
        p.add_argument("--store-dir", type=Path, default=None, help="Directory of the calibration store.")

    cal = sub.add_parser("calibrate", help="Detect the chessboard in every frame of a directory and calibrate.")
    cal.add_argument("frames_dir", type=Path)
    cal.add_argument("--min-samples", type=int, default=None)
    add_common(cal)

    show = sub.add_parser("show", help="Print the stored intrinsics of a profile.")
    add_common(show)

    proj = sub.add_parser("projection", help="Print the 16 AR projection values for a pose.")
    proj.add_argument("--pose", type=Path, required=True, help='JSON {"rotation": 3x3, "translation": [x,y,z]}.')
    proj.add_argument("--ratio", type=float, default=1.0, help="Display-to-image scale factor.")
    proj.add_argument("--view", type=Path, default=None, help="JSON 4x4 view matrix (renderer layout).")
    add_common(proj)

    gen = sub.add_parser("generate-synthetic", help="Render chessboard frames seen by a known camera.")
    gen.add_argument("--out", type=Path, required=True)
    gen.add_argument("--frames", type=int, default=8)
    gen.add_argument("--seed", type=int, default=0)
    gen.add_argument("--width", type=int, default=640)
    gen.add_argument("--height", type=int, default=480)
    add_common(gen)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = _config_from_args(args)
        if args.cmd == "calibrate":
            print(json.dumps(run_calibrate(cfg, args.frames_dir), indent=2))
            return 0
        if args.cmd == "show":
            print(json.dumps(run_show(cfg), indent=2))
            return 0
        if args.cmd == "projection":
            print(json.dumps(run_projection(cfg, args.pose, args.ratio, args.view)))
            return 0
        if args.cmd == "generate-synthetic":
            truth_path = run_generate_synthetic(cfg, args.out, args.frames, args.seed, args.width, args.height)
            print(f"Wrote {truth_path}")
            return 0
    except (ArcalibError, FileNotFoundError, NotADirectoryError) as e:
        print(f"arcalib: {e}", file=sys.stderr)
        return 1

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
