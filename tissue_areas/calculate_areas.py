# -*- coding: utf-8 -*-
"""
calculate_areas.py - pixel area of each tissue class in a label mask.
"""

from __future__ import annotations
from collections import OrderedDict
from typing import Dict, Mapping

import numpy as np

from .errors import TabulationFailed
from .tissue_codes import AREA_COLUMNS, TissueCode

__all__ = ["calculate_areas", "empty_areas", "areas_to_columns", "count_background"]


def _check_mask(mask) -> np.ndarray:
    mask = np.asarray(mask)
    if mask.ndim != 2:
        raise TabulationFailed(f"Mask must be 2D, got {mask.ndim} dimension(s)")
    if not (np.issubdtype(mask.dtype, np.integer) or mask.dtype == bool):
        raise TabulationFailed(f"Mask must hold integer codes, got dtype {mask.dtype}")
    return mask


def calculate_areas(mask: np.ndarray) -> Dict[TissueCode, int]:
    """
    Count the pixels of every tissue code in a mask.

    Parameters
    ----------
    mask : np.ndarray
        2D array of tissue codes.

    Returns
    -------
    areas : dict[TissueCode, int]
        One entry per non-background code, in ``AREA_COLUMNS`` order.
        Background and codes outside the table are not counted.

    Raises
    ------
    TabulationFailed
        If the mask is not a 2D integer grid.
    """
    mask = _check_mask(mask)
    areas: Dict[TissueCode, int] = OrderedDict()
    for code in AREA_COLUMNS:
        areas[code] = int(np.count_nonzero(mask == int(code)))
    return areas


def empty_areas() -> Dict[TissueCode, int]:
    """Zero-filled area record."""
    return OrderedDict((code, 0) for code in AREA_COLUMNS)


def areas_to_columns(areas: Mapping[TissueCode, int]) -> Dict[str, int]:
    """Rename an area record to its table columns (``NeocorticalGM``, ...)."""
    return OrderedDict(
        (column, int(areas.get(code, 0))) for code, column in AREA_COLUMNS.items()
    )


def count_background(mask: np.ndarray) -> int:
    mask = _check_mask(mask)
    return int(np.count_nonzero(mask == int(TissueCode.BACKGROUND)))
