# -*- coding: utf-8 -*-
"""
regions.py - annotated polygon regions.

A ``Region`` is one hand-drawn shape from a ROI archive: its display name
(ending in a tissue suffix, see ``tissue_codes``) and its closed vertex list
in image coordinates. The specimen metadata fields are empty when a region
comes out of the decoder and are filled in by ``annotate_regions``.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from .tissue_codes import region_suffix

__all__ = ["Region", "annotate_regions"]


@dataclass(frozen=True, eq=False)
class Region:
    name: str
    vertices: np.ndarray = field(repr=False)  # (N, 2) float, columns x, y
    specimen_name: Optional[str] = None
    root_path: Optional[Path] = None
    roi_path: Optional[Path] = None
    image_id: Optional[str] = None
    # further closed subpaths of a composite shape, combined with
    # ``vertices`` by the even-odd rule (holes, XOR shapes)
    rings: Tuple[np.ndarray, ...] = field(default=(), repr=False)

    def __post_init__(self):
        object.__setattr__(self, "vertices", _as_vertices(self.name, self.vertices))
        object.__setattr__(
            self, "rings", tuple(_as_vertices(self.name, ring) for ring in self.rings)
        )

    @property
    def suffix(self) -> str:
        return region_suffix(self.name)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0]) + sum(int(r.shape[0]) for r in self.rings)

    @property
    def is_composite(self) -> bool:
        return len(self.rings) > 0

    @property
    def paths(self) -> Tuple[np.ndarray, ...]:
        """All closed subpaths, outline first."""
        return (self.vertices,) + self.rings


def _as_vertices(name: str, vertices) -> np.ndarray:
    vertices = np.array(vertices, dtype=float)
    if vertices.size == 0:
        vertices = vertices.reshape(0, 2)
    if vertices.ndim != 2 or vertices.shape[1] != 2:
        raise ValueError(
            f"Region {name!r}: vertices must be an (N, 2) array, got shape {vertices.shape}"
        )
    vertices.setflags(write=False)
    return vertices


def annotate_regions(
    regions: Iterable[Region],
    specimen_name: str,
    root_path: Union[str, Path],
    roi_path: Union[str, Path],
    image_id: str,
) -> List[Region]:
    """
    Attach specimen metadata to every region of a set.

    Parameters
    ----------
    regions : iterable of Region
        Regions decoded from one archive.
    specimen_name : str
        Specimen folder name, e.g. ``"Alouatta_seniculus_1170"``.
    root_path : str | Path
        Top-level specimen folder.
    roi_path : str | Path
        Archive the regions were read from.
    image_id : str
        Three-digit image identifier.

    Returns
    -------
    list[Region]
        New regions carrying the metadata; the inputs are left untouched.
    """
    root_path = Path(root_path)
    roi_path = Path(roi_path)
    return [
        replace(
            region,
            specimen_name=specimen_name,
            root_path=root_path,
            roi_path=roi_path,
            image_id=image_id,
        )
        for region in regions
    ]
