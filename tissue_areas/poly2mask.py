# -*- coding: utf-8 -*-
"""
poly2mask.py - rasterize closed polygons.

ROI vertices are ImageJ coordinates, which address pixel corners: the pixel
at row r, column c spans [c, c+1) x [r, r+1) and its centre sits at
(c + 0.5, r + 0.5). ``skimage.draw.polygon`` samples integer positions, so
vertices are shifted by half a pixel before filling. A square with corners
(0, 0) and (10, 10) therefore covers exactly 10 x 10 pixels.

- polygon_pixels(vertices, shape): row/column indices of the covered pixels.
- poly2mask(vertices, shape): the same as a boolean mask.
- paths_to_mask(paths, shape): several subpaths of a composite shape
  combined by the even-odd rule.
"""

from __future__ import annotations
from typing import Sequence, Tuple

import numpy as np
from skimage import draw

__all__ = ["polygon_pixels", "poly2mask", "paths_to_mask"]

PIXEL_CENTER = 0.5


def polygon_pixels(vertices: np.ndarray, shape: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Indices of the pixels whose centre lies inside a closed polygon.

    Parameters
    ----------
    vertices : np.ndarray
        (N, 2) array of [x, y] vertex coordinates; first and last vertex are
        implicitly connected.
    shape : (H, W)
        Grid shape; the polygon is clipped to it.

    Returns
    -------
    rr, cc : np.ndarray
        Row and column indices. Both are empty for degenerate polygons
        (fewer than three finite vertices, zero area).
    """
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 2)
    vertices = vertices[np.isfinite(vertices).all(axis=1)]
    if vertices.shape[0] < 3:
        empty = np.zeros(0, dtype=np.intp)
        return empty, empty

    col_coords = vertices[:, 0] - PIXEL_CENTER  # x
    row_coords = vertices[:, 1] - PIXEL_CENTER  # y
    return draw.polygon(row_coords, col_coords, shape)


def poly2mask(vertices: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """Boolean (H, W) mask of one closed polygon, see ``polygon_pixels``."""
    mask = np.zeros(shape, dtype=bool)
    fill_row, fill_col = polygon_pixels(vertices, shape)
    mask[fill_row, fill_col] = True
    return mask


def paths_to_mask(paths: Sequence[np.ndarray], shape: Tuple[int, int]) -> np.ndarray:
    """
    Boolean mask of a composite shape: a pixel is inside when an odd number
    of subpaths cover it, so an inner ring cuts a hole into an outer one.
    """
    mask = np.zeros(shape, dtype=bool)
    for path in paths:
        fill_row, fill_col = polygon_pixels(path, shape)
        mask[fill_row, fill_col] ^= True
    return mask
