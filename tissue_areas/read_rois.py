# -*- coding: utf-8 -*-
"""
read_rois.py - decode ImageJ ROI archives into ``Region`` records.

Archives are the ``.zip`` files saved by the ImageJ/Fiji ROI manager (one
``.roi`` entry per shape); a single ``.roi`` file is accepted as well.
Decoding uses ``roifile``. An archive is either decoded completely or not at
all: any unreadable shape fails the whole archive with ``DecodeFailed``.

Composite shapes (a region with holes, or the XOR of several outlines) keep
every subpath: the first becomes ``Region.vertices``, the others
``Region.rings``, and they are filled with the even-odd rule.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Union
import logging
import re

import numpy as np
import roifile

from .errors import DecodeFailed, IdentifierNotMatched
from .regions import Region

logger = logging.getLogger(__name__)

__all__ = ["read_roi_archive", "parse_image_id"]

_IMAGE_ID_RE = re.compile(r"^.+_(\d{3})_roi$")


def parse_image_id(roi_path: Union[str, Path]) -> str:
    """
    Extract the three-digit image ID from ``<specimen>_<ddd>_roi.zip``.

    Raises
    ------
    IdentifierNotMatched
        If the file name does not follow the convention.
    """
    stem = Path(roi_path).stem
    match = _IMAGE_ID_RE.match(stem)
    if match is None:
        raise IdentifierNotMatched(f"Cannot parse ImageID from {stem!r}")
    return match.group(1)


def read_roi_archive(roi_path: Union[str, Path]) -> List[Region]:
    """
    Read every shape of an ImageJ ROI archive.

    Parameters
    ----------
    roi_path : str | Path
        ``.zip`` archive or single ``.roi`` file.

    Returns
    -------
    list[Region]
        One region per shape, in archive order, with the shape name and its
        (x, y) vertex coordinates.

    Raises
    ------
    DecodeFailed
        If the file is missing or any shape cannot be decoded.
    """
    roi_path = Path(roi_path)
    if not roi_path.is_file():
        raise DecodeFailed(f"ROI archive not found: {roi_path}")

    try:
        rois = roifile.roiread(str(roi_path))
    except Exception as exc:
        raise DecodeFailed(f"Failed to read {roi_path}: {exc}") from exc

    if not isinstance(rois, list):
        rois = [rois]

    regions: List[Region] = []
    for idx, roi in enumerate(rois):
        name = roi.name or ""
        try:
            region = _roi_to_region(roi, name)
        except Exception as exc:
            raise DecodeFailed(
                f"Failed to decode shape {idx} ({name!r}) in {roi_path}: {exc}"
            ) from exc
        regions.append(region)

    logger.debug("Decoded %d shapes from %s", len(regions), roi_path)
    return regions


def _roi_to_region(roi, name: str) -> Region:
    if roi.composite:
        paths = [np.asarray(p, dtype=float) for p in roi.coordinates(multi=True)]
        if not paths:
            raise ValueError("composite shape without subpaths")
        return Region(name=name, vertices=paths[0], rings=tuple(paths[1:]))
    return Region(name=name, vertices=np.asarray(roi.coordinates(), dtype=float))
