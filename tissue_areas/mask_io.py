# -*- coding: utf-8 -*-
"""
mask_io.py - reference image dimensions and mask persistence (OpenCV).

- read_reference_shape(path): (height, width) of the specimen image a mask
  must match. Pixel content is not used.
- write_mask(mask, path): store a label mask as a single-channel 8-bit
  raster (TIFF for the ``_mask.tif`` names used by ``SpecimenLayout``).
- read_mask(path): load a stored mask back as a uint8 code grid.
"""

from __future__ import annotations
from pathlib import Path
from typing import Tuple, Union
import logging
import os

import cv2
import numpy as np

from .errors import MaskReadFailed, MaskWriteFailed, ReferenceUnavailable

logger = logging.getLogger(__name__)

__all__ = ["read_reference_shape", "write_mask", "read_mask"]


def read_reference_shape(image_path: Union[str, Path]) -> Tuple[int, int]:
    """
    Return (height, width) of a reference image.

    Raises
    ------
    ReferenceUnavailable
        If the file is missing or cannot be decoded.
    """
    image_path = Path(image_path)
    if not image_path.is_file():
        raise ReferenceUnavailable(f"Reference image not found: {image_path}")

    try:
        img = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise ReferenceUnavailable(f"Could not read image {image_path}: {exc}") from exc
    if img is None:
        raise ReferenceUnavailable(f"Could not read image {image_path}")

    h, w = img.shape[:2]
    return int(h), int(w)


def write_mask(mask: np.ndarray, mask_path: Union[str, Path]) -> Path:
    """
    Write a label mask to disk, creating the containing folder if needed.

    Returns the path written.

    Raises
    ------
    MaskWriteFailed
        If the mask is not a 2D array or OpenCV cannot write the file.
    """
    mask_path = Path(mask_path)
    if mask.ndim != 2:
        raise MaskWriteFailed(f"Mask must be 2D, got shape {mask.shape}")

    try:
        os.makedirs(mask_path.parent, exist_ok=True)  # safe under concurrent workers
        ok = cv2.imwrite(str(mask_path), mask.astype(np.uint8))
    except (OSError, cv2.error) as exc:
        raise MaskWriteFailed(f"Could not write mask to {mask_path}: {exc}") from exc
    if not ok:
        raise MaskWriteFailed(f"Could not write mask to {mask_path}")

    logger.debug("Wrote mask %s (%dx%d)", mask_path, mask.shape[0], mask.shape[1])
    return mask_path


def read_mask(mask_path: Union[str, Path]) -> np.ndarray:
    """
    Read a mask written by ``write_mask`` back as a 2D uint8 array.

    Raises
    ------
    MaskReadFailed
        If the file is missing or cannot be decoded.
    """
    try:
        mask = cv2.imread(str(mask_path), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise MaskReadFailed(f"Could not read mask {mask_path}: {exc}") from exc
    if mask is None:
        raise MaskReadFailed(f"Could not read mask {mask_path}")
    if mask.ndim == 3:
        mask = mask[..., 0]
    return mask.astype(np.uint8)
