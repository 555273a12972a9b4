# -*- coding: utf-8 -*-
"""
create_mask.py - build a labeled tissue mask from the regions of one image.

The mask starts as background (0). Tiers from ``tissue_codes.TIERS`` are then
applied one after the other; every region of a tier is rasterized and its
pixels are overwritten with the tier code:

    1) gray matter (#g, #i)   -> 1
    2) archicortical (#a)     -> 4
    3) white matter (#w)      -> 2
    4) cerebellum (#c)        -> 3
    5) outer only (#o)        -> 0

Regions of the same tier add up; on overlap between tiers the later tier
wins, and the outer-only tier clears whatever lies underneath it.
"""

from __future__ import annotations
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple, Union
import logging

import numpy as np

from .errors import InvalidInput, MaskWriteFailed, ReferenceUnavailable, TissueAreasError
from .mask_io import read_reference_shape, write_mask
from .poly2mask import paths_to_mask, polygon_pixels
from .regions import Region
from .tissue_codes import TIERS

logger = logging.getLogger(__name__)

__all__ = ["create_mask", "build_unit_mask"]


def create_mask(regions: Sequence[Region], height: int, width: int) -> np.ndarray:
    """
    Rasterize a region set into a uint8 label mask.

    Parameters
    ----------
    regions : sequence of Region
        All regions of one image. Must not be empty.
    height, width : int
        Mask dimensions, normally those of the reference image.

    Returns
    -------
    mask : np.ndarray, dtype=uint8, shape (height, width)

    Raises
    ------
    InvalidInput
        If the region set is empty or the dimensions are not positive.
    InvalidRegionName
        If any region name lacks a known suffix. Names are all checked before
        the first polygon is drawn.
    """
    if regions is None or len(regions) == 0:
        raise InvalidInput("Expected a non-empty set of ROIs")
    if int(height) <= 0 or int(width) <= 0:
        raise InvalidInput(f"Mask dimensions must be positive, got {height}x{width}")

    shape = (int(height), int(width))

    # Parse every suffix first so a bad name fails before any drawing
    suffixes = [region.suffix for region in regions]

    mask = np.zeros(shape, dtype=np.uint8)
    for tier in TIERS:
        members = [r for r, s in zip(regions, suffixes) if s in tier.suffixes]
        if not members:
            continue
        code = int(tier.code)
        for region in members:
            if region.is_composite:
                mask[paths_to_mask(region.paths, shape)] = code
            else:
                fill_row, fill_col = polygon_pixels(region.vertices, shape)
                mask[fill_row, fill_col] = code
        logger.debug("Tier %s: %d region(s) set to %d", tier.name, len(members), code)

    return mask


def build_unit_mask(
    regions: Sequence[Region],
    reference_path: Union[str, Path],
    reference_shape: Callable[[Union[str, Path]], Tuple[int, int]] = read_reference_shape,
    mask_path: Optional[Union[str, Path]] = None,
    mask_writer: Callable[[np.ndarray, Union[str, Path]], object] = write_mask,
) -> np.ndarray:
    """
    Build the mask of one image sized after its reference image.

    Parameters
    ----------
    regions : sequence of Region
        Regions of the image.
    reference_path : str | Path
        Image whose dimensions the mask must match.
    reference_shape : callable, optional
        Returns (height, width) for ``reference_path``. Any error it raises
        surfaces as ``ReferenceUnavailable``.
    mask_path : str | Path, optional
        Where to persist the finished mask. Nothing is written when None.
    mask_writer : callable, optional
        Persists the mask. Any error it raises surfaces as ``MaskWriteFailed``.

    Returns
    -------
    mask : np.ndarray, dtype=uint8
    """
    if regions is None or len(regions) == 0:
        raise InvalidInput("Expected a non-empty set of ROIs")

    try:
        h, w = reference_shape(reference_path)
    except TissueAreasError:
        raise
    except Exception as exc:
        raise ReferenceUnavailable(
            f"Could not get dimensions of {reference_path}: {exc}"
        ) from exc

    mask = create_mask(regions, h, w)
    mask.setflags(write=False)

    if mask_path is not None:
        try:
            mask_writer(mask, mask_path)
        except TissueAreasError:
            raise
        except Exception as exc:
            raise MaskWriteFailed(f"Could not write mask to {mask_path}: {exc}") from exc

    return mask
