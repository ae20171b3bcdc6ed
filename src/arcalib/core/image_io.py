from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
from PIL import Image

FRAME_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp")


def load_frame_gray(path: str | Path) -> np.ndarray:
    """
    Load a video frame from disk as grayscale uint8.

    OpenCV decodes first; Pillow covers formats missing from the OpenCV build.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    img = cv2.imread(str(p), cv2.IMREAD_GRAYSCALE)
    if img is not None:
        if img.dtype != np.uint8:
            img = np.clip(img, 0, 255).astype(np.uint8)
        return img

    with Image.open(p) as im:
        return np.asarray(im.convert("L"), dtype=np.uint8)


def save_frame(path: str | Path, frame: np.ndarray) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.asarray(frame, dtype=np.uint8)).save(p)
    return p


def list_frames(directory: str | Path) -> list[Path]:
    d = Path(directory)
    if not d.is_dir():
        raise NotADirectoryError(d)
    return sorted(p for p in d.iterdir() if p.is_file() and p.suffix.lower() in FRAME_SUFFIXES)
