# -*- coding: utf-8 -*-
from __future__ import annotations
from pathlib import Path

import cv2
import numpy as np

from tissue_areas.regions import Region


def square(x0, y0, x1, y1) -> np.ndarray:
    """Corner coordinates of an axis-aligned rectangle (pixel-corner convention)."""
    return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=float)


def region(name: str, x0, y0, x1, y1) -> Region:
    return Region(name=name, vertices=square(x0, y0, x1, y1))


def write_image(path: Path, height: int, width: int, channels: int = 1) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    shape = (height, width) if channels == 1 else (height, width, channels)
    img = np.full(shape, 128, dtype=np.uint8)
    assert cv2.imwrite(str(path), img)
    return path
