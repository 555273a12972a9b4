# -*- coding: utf-8 -*-
"""
check_specimen.py - verify that a specimen folder is complete.

For every reference image in ``Species/`` there must be a ROI archive in
``ROI-files/`` and an outlined image in ``Outlines/`` with the same image ID.
The check reports counts and the IDs missing a partner; it does not open any
file.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List
import logging

from .config import SpecimenLayout
from .errors import MissingFolder

logger = logging.getLogger(__name__)

__all__ = ["SpecimenReport", "extract_ids", "check_specimen", "format_report"]


@dataclass
class SpecimenReport:
    specimen_name: str
    species_ids: List[str]
    roi_ids: List[str]
    outline_ids: List[str]
    roi_paths: List[Path] = field(default_factory=list)
    missing_roi: List[str] = field(default_factory=list)
    missing_outline: List[str] = field(default_factory=list)

    @property
    def n_species(self) -> int:
        return len(self.species_ids)

    @property
    def n_roi(self) -> int:
        return len(self.roi_ids)

    @property
    def n_outline(self) -> int:
        return len(self.outline_ids)

    @property
    def ok(self) -> bool:
        return not self.missing_roi and not self.missing_outline


def extract_ids(paths: Iterable[Path], specimen_name: str, suffix: str) -> List[str]:
    """
    Image IDs from file names: drop the extension, the ``<specimen>_``
    prefix and the trailing ``suffix`` (``"_roi"``, ``"_outlined"`` or ``""``).
    """
    prefix = f"{specimen_name}_"
    ids = []
    for path in paths:
        token = Path(path).stem
        if token.startswith(prefix):
            token = token[len(prefix):]
        if suffix and token.endswith(suffix):
            token = token[: -len(suffix)]
        ids.append(token)
    return ids


def check_specimen(layout: SpecimenLayout) -> SpecimenReport:
    """
    Compare images, ROI archives and outlines of one specimen.

    Raises
    ------
    MissingFolder
        If the root or one of the three input subfolders does not exist.
    """
    if not layout.root.is_dir():
        raise MissingFolder(f"The specified folder does not exist: {layout.root}")
    for label, folder in (
        ("Species", layout.species_dir),
        ("ROI-files", layout.roi_dir),
        ("Outlines", layout.outline_dir),
    ):
        if not folder.is_dir():
            raise MissingFolder(f"Missing {label} folder: {folder}")

    roi_paths = layout.roi_paths()
    species_ids = extract_ids(layout.image_paths(), layout.name, "")
    roi_ids = extract_ids(roi_paths, layout.name, "_roi")
    outline_ids = extract_ids(layout.outline_paths(), layout.name, "_outlined")

    missing_roi = sorted(set(species_ids) - set(roi_ids))
    missing_outline = sorted(set(species_ids) - set(outline_ids))

    if missing_roi:
        logger.warning(
            "Missing ROI for %d Species image(s): %s", len(missing_roi), ", ".join(missing_roi)
        )
    if missing_outline:
        logger.warning(
            "Missing Outline for %d Species image(s): %s",
            len(missing_outline), ", ".join(missing_outline),
        )

    return SpecimenReport(
        specimen_name=layout.name,
        species_ids=species_ids,
        roi_ids=roi_ids,
        outline_ids=outline_ids,
        roi_paths=roi_paths,
        missing_roi=missing_roi,
        missing_outline=missing_outline,
    )


def format_report(report: SpecimenReport) -> str:
    lines = [
        f"--- Report for specimen: {report.specimen_name} ---",
        f"Number of Species images : {report.n_species}",
        f"Number of ROI archives   : {report.n_roi}",
        f"Number of Outlines       : {report.n_outline}",
    ]
    if report.missing_roi:
        lines.append(f"Missing ROI     : {', '.join(report.missing_roi)}")
    if report.missing_outline:
        lines.append(f"Missing Outline : {', '.join(report.missing_outline)}")
    return "\n".join(lines)
