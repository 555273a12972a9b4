# -*- coding: utf-8 -*-
"""
config.py - folder layout of one specimen.

Expected structure under a specimen root, e.g. ``Alouatta_seniculus_1170/``:

    Species/<name>/<name>_<id>.tif                   reference images
    ROI-files/<name>_roi/<name>_<id>_roi.zip         ROI archives
    Outlines/<name>_outlined/<name>_<id>_outlined.tif
    masks/<name>_<id>_mask.tif                       written by the pipeline
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Union

__all__ = ["SpecimenLayout"]


class SpecimenLayout:
    def __init__(
        self,
        root: Union[str, Path],
        image_ext: str = ".tif",
        roi_ext: str = ".zip",
        mask_ext: str = ".tif",
    ):
        self.root = Path(root)
        self.name = self.root.name

        self.image_ext = image_ext
        self.roi_ext = roi_ext
        self.mask_ext = mask_ext

        # input folders
        self.species_dir = self.root / "Species" / self.name
        self.roi_dir = self.root / "ROI-files" / f"{self.name}_roi"
        self.outline_dir = self.root / "Outlines" / f"{self.name}_outlined"

        # output folder
        self.masks_dir = self.root / "masks"

    def __repr__(self):
        return f"SpecimenLayout({str(self.root)!r})"

    def image_path(self, image_id: str) -> Path:
        return self.species_dir / f"{self.name}_{image_id}{self.image_ext}"

    def roi_path(self, image_id: str) -> Path:
        return self.roi_dir / f"{self.name}_{image_id}_roi{self.roi_ext}"

    def outline_path(self, image_id: str) -> Path:
        return self.outline_dir / f"{self.name}_{image_id}_outlined{self.image_ext}"

    def mask_path(self, image_id: str) -> Path:
        return self.masks_dir / f"{self.name}_{image_id}_mask{self.mask_ext}"

    def image_paths(self) -> List[Path]:
        return sorted(self.species_dir.glob(f"*{self.image_ext}"))

    def roi_paths(self) -> List[Path]:
        return sorted(self.roi_dir.glob(f"*{self.roi_ext}"))

    def outline_paths(self) -> List[Path]:
        return sorted(self.outline_dir.glob(f"*{self.image_ext}"))
