# -*- coding: utf-8 -*-
"""
process_rois.py - run the ROI -> mask -> area pipeline over a batch of images.

Each unit (one ROI archive of one specimen image) goes through

    pending -> identified -> decoded -> masked -> tabulated -> done

and may leave early as ``skipped`` (image ID missing or not expected) or
``failed`` (archive unreadable, bad ROI name, no reference image, mask not
written). A failing unit never stops the batch: its entry records the status
and reason and the next unit is processed. Area counting is the exception to
the rule: if it fails the unit is still ``done``, with a zero-filled record
and a warning.

Units share no state, so ``process_roi(..., workers=N)`` may run them on a
thread pool. Entries are stored by input position, so the result order is
always the order of ``units``.
"""

from __future__ import annotations
from collections import OrderedDict
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from .calculate_areas import areas_to_columns, calculate_areas, empty_areas
from .config import SpecimenLayout
from .create_mask import build_unit_mask
from .errors import (
    DecodeFailed,
    IdentifierNotMatched,
    InvalidInput,
    ReferenceUnavailable,
)
from .mask_io import read_reference_shape, write_mask
from .read_rois import parse_image_id, read_roi_archive
from .regions import Region, annotate_regions
from .tissue_codes import AREA_COLUMNS, TissueCode

logger = logging.getLogger(__name__)

__all__ = [
    "UnitStatus",
    "Stage",
    "RoiUnit",
    "BatchEntry",
    "BatchResult",
    "units_from_layout",
    "process_roi",
]

NO_ROIS_WARNING = "Warning: no or wrong labeled ROIs found"

RESULT_COLUMNS = [
    "specimen_name",
    "root_path",
    "roi_path",
    "reference_path",
    "mask_path",
    "image_id",
    "n_rois",
    *AREA_COLUMNS.values(),
    "status",
    "reason",
]

Decoder = Callable[[Union[str, Path]], Sequence[Region]]
ShapeReader = Callable[[Union[str, Path]], Tuple[int, int]]
MaskWriter = Callable[[np.ndarray, Union[str, Path]], object]


class UnitStatus(Enum):
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class Stage(Enum):
    PENDING = "pending"
    IDENTIFIED = "identified"
    DECODED = "decoded"
    MASKED = "masked"
    TABULATED = "tabulated"
    DONE = "done"


@dataclass(frozen=True)
class RoiUnit:
    """One ROI archive plus everything needed to locate its image and mask."""

    roi_path: Path
    specimen_name: str
    root_path: Path
    reference_path: Optional[Path] = None
    mask_path: Optional[Path] = None
    image_id: Optional[str] = None


@dataclass
class BatchEntry:
    roi_path: Path
    specimen_name: str
    root_path: Path
    reference_path: Optional[Path] = None
    mask_path: Optional[Path] = None
    image_id: Optional[str] = None
    n_rois: Optional[int] = None
    areas: Optional[Dict[TissueCode, int]] = None
    status: UnitStatus = UnitStatus.FAILED
    stage: Stage = Stage.PENDING
    reason: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def needs_warning(self) -> bool:
        """True when the unit has no regions or no area counts."""
        return not self.n_rois or self.areas is None

    def as_row(self) -> Dict[str, object]:
        row = OrderedDict([
            ("specimen_name", self.specimen_name),
            ("root_path", str(self.root_path)),
            ("roi_path", str(self.roi_path)),
            ("reference_path", str(self.reference_path) if self.reference_path else None),
            ("mask_path", str(self.mask_path) if self.mask_path else None),
            ("image_id", self.image_id),
            ("n_rois", self.n_rois),
        ])
        if self.areas is None:
            row.update((column, None) for column in AREA_COLUMNS.values())
        else:
            row.update(areas_to_columns(self.areas))
        row["status"] = self.status.value
        row["reason"] = self.reason
        return row


@dataclass
class BatchResult:
    entries: List[BatchEntry]

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, idx):
        return self.entries[idx]

    def with_status(self, status: UnitStatus) -> List[BatchEntry]:
        return [e for e in self.entries if e.status is status]

    @property
    def succeeded(self) -> List[BatchEntry]:
        return self.with_status(UnitStatus.DONE)

    @property
    def skipped(self) -> List[BatchEntry]:
        return self.with_status(UnitStatus.SKIPPED)

    @property
    def failed(self) -> List[BatchEntry]:
        return self.with_status(UnitStatus.FAILED)

    def counts(self) -> Dict[str, int]:
        return OrderedDict((status.value, len(self.with_status(status))) for status in UnitStatus)

    def to_frame(self) -> pd.DataFrame:
        """One row per unit, in input order."""
        df = pd.DataFrame([e.as_row() for e in self.entries], columns=RESULT_COLUMNS)
        for column in ["n_rois", *AREA_COLUMNS.values()]:
            df[column] = pd.to_numeric(df[column]).astype("Int64")
        return df

    def to_csv(self, csv_path: Union[str, Path]) -> Path:
        csv_path = Path(csv_path)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(csv_path, index=False)
        return csv_path

    def format_summary(self) -> str:
        """
        Text summary: one line per unit, a warning marker on units without
        regions or area counts, and the status totals.
        """
        specimens = list(OrderedDict.fromkeys(e.specimen_name for e in self.entries))
        lines = [f"Summary for specimen: {', '.join(specimens)}"]
        for e in self.entries:
            sid = e.image_id or ""
            if e.needs_warning:
                detail = NO_ROIS_WARNING
                if e.reason:
                    detail += f" ({e.reason})"
            else:
                detail = f"N RoIs: [{e.n_rois}]"
            lines.append(f"{e.roi_path.stem}\t{sid}\t{e.status.value}\t{detail}")
        totals = self.counts()
        lines.append(
            "Done: {done}, skipped: {skipped}, failed: {failed}".format(**totals)
        )
        return "\n".join(lines)


def units_from_layout(
    layout: SpecimenLayout,
    roi_paths: Optional[Sequence[Union[str, Path]]] = None,
) -> List[RoiUnit]:
    """
    Resolve the image and mask paths of every ROI archive of a specimen.

    Archives whose name carries no image ID are kept without paths; the batch
    skips them at the identify step.
    """
    if roi_paths is None:
        roi_paths = layout.roi_paths()

    units = []
    for roi_path in roi_paths:
        roi_path = Path(roi_path)
        try:
            image_id = parse_image_id(roi_path)
        except IdentifierNotMatched:
            units.append(RoiUnit(roi_path, layout.name, layout.root))
            continue
        units.append(
            RoiUnit(
                roi_path=roi_path,
                specimen_name=layout.name,
                root_path=layout.root,
                reference_path=layout.image_path(image_id),
                mask_path=layout.mask_path(image_id),
                image_id=image_id,
            )
        )
    return units


def _validate_units(units) -> List[RoiUnit]:
    if isinstance(units, (str, bytes, Path)) or not isinstance(units, Iterable):
        raise InvalidInput("units must be a list of RoiUnit")
    units = list(units)
    for idx, unit in enumerate(units):
        if not isinstance(unit, RoiUnit):
            raise InvalidInput(f"units[{idx}] is {type(unit).__name__}, expected RoiUnit")
    return units


def _validate_ids(species_ids) -> FrozenSet[str]:
    if isinstance(species_ids, (str, bytes)) or not isinstance(species_ids, Iterable):
        raise InvalidInput("species_ids must be a list of ID strings")
    species_ids = list(species_ids)
    for sid in species_ids:
        if not isinstance(sid, str):
            raise InvalidInput(f"species_ids must hold strings, got {sid!r}")
    return frozenset(species_ids)


def _stop(entry: BatchEntry, status: UnitStatus, exc: Exception) -> BatchEntry:
    entry.status = status
    entry.reason = f"{type(exc).__name__}: {exc}"
    logger.warning("%s %s: %s", status.value.capitalize(), entry.roi_path.stem, entry.reason)
    return entry


def _process_unit(
    unit: RoiUnit,
    expected_ids: FrozenSet[str],
    decoder: Decoder,
    reference_shape: ShapeReader,
    mask_writer: MaskWriter,
    save_masks: bool,
) -> BatchEntry:
    roi_path = Path(unit.roi_path)
    fname = roi_path.stem
    entry = BatchEntry(
        roi_path=roi_path,
        specimen_name=unit.specimen_name,
        root_path=Path(unit.root_path),
        reference_path=Path(unit.reference_path) if unit.reference_path else None,
        image_id=unit.image_id,
    )

    # 1) Identify
    try:
        sid = unit.image_id or parse_image_id(roi_path)
        entry.image_id = sid
        if sid not in expected_ids:
            raise IdentifierNotMatched(f"ImageID {sid!r} not in speciesIDs")
    except IdentifierNotMatched as exc:
        return _stop(entry, UnitStatus.SKIPPED, exc)
    entry.stage = Stage.IDENTIFIED

    # 2) Decode
    try:
        raw = list(decoder(roi_path))
    except DecodeFailed as exc:
        return _stop(entry, UnitStatus.FAILED, exc)
    except Exception as exc:
        return _stop(entry, UnitStatus.FAILED, DecodeFailed(f"Failed to read {roi_path}: {exc}"))
    entry.n_rois = len(raw)
    entry.stage = Stage.DECODED

    # 3) Annotate
    try:
        regions = annotate_regions(raw, unit.specimen_name, unit.root_path, roi_path, sid)
    except Exception as exc:
        return _stop(entry, UnitStatus.FAILED, DecodeFailed(f"Decoder returned malformed regions: {exc}"))
    logger.info(
        "In %s (ID=%s) found contours:\n%s",
        roi_path, sid, "\n".join(f"  - {r.name}" for r in regions),
    )

    # 4) Mask
    mask_path = Path(unit.mask_path) if (save_masks and unit.mask_path) else None
    try:
        if entry.reference_path is None:
            raise ReferenceUnavailable(f"No reference image known for {fname}")
        mask = build_unit_mask(
            regions,
            entry.reference_path,
            reference_shape=reference_shape,
            mask_path=mask_path,
            mask_writer=mask_writer,
        )
    except Exception as exc:
        return _stop(entry, UnitStatus.FAILED, exc)
    entry.mask_path = mask_path
    entry.stage = Stage.MASKED

    # 5) Tabulate; a failure here leaves zero counts
    try:
        areas = calculate_areas(mask)
    except Exception as exc:
        message = f"Area calculation failed for {fname}: {exc}"
        logger.warning("%s", message)
        entry.warnings.append(message)
        areas = empty_areas()
    entry.areas = areas
    entry.stage = Stage.TABULATED

    # 6) Record
    entry.status = UnitStatus.DONE
    entry.stage = Stage.DONE
    logger.info(
        "Processed %s: %d ROIs -> areas = %s",
        fname, entry.n_rois, dict(areas_to_columns(areas)),
    )
    return entry


def process_roi(
    units: Sequence[RoiUnit],
    species_ids: Sequence[str],
    *,
    decoder: Decoder = read_roi_archive,
    reference_shape: ShapeReader = read_reference_shape,
    mask_writer: MaskWriter = write_mask,
    save_masks: bool = True,
    workers: int = 1,
    progress: bool = False,
) -> BatchResult:
    """
    Create masks and tissue areas for every ROI archive in a batch.

    Parameters
    ----------
    units : sequence of RoiUnit
        ROI archives to process, see ``units_from_layout``.
    species_ids : sequence of str
        Image IDs expected for the specimen (e.g. ``["001", "011"]``). Units
        whose ID is not in this list are skipped.
    decoder : callable, optional
        Archive path -> regions. Defaults to ``read_roi_archive``.
    reference_shape : callable, optional
        Image path -> (height, width). Defaults to ``read_reference_shape``.
    mask_writer : callable, optional
        Persists a mask. Defaults to ``write_mask``.
    save_masks : bool, optional
        Write each mask to ``unit.mask_path`` (when set).
    workers : int, optional
        Number of threads; 1 processes units sequentially.
    progress : bool, optional
        Show a tqdm progress bar.

    Returns
    -------
    BatchResult
        One entry per unit, in the order of ``units``.

    Raises
    ------
    InvalidInput
        If ``units`` or ``species_ids`` are malformed. Nothing is processed.
    """
    units = _validate_units(units)
    expected_ids = _validate_ids(species_ids)
    if not isinstance(workers, int) or workers < 1:
        raise InvalidInput(f"workers must be a positive integer, got {workers!r}")

    run = partial(
        _process_unit,
        expected_ids=expected_ids,
        decoder=decoder,
        reference_shape=reference_shape,
        mask_writer=mask_writer,
        save_masks=save_masks,
    )

    entries: List[Optional[BatchEntry]] = [None] * len(units)
    if workers == 1:
        for idx, unit in enumerate(
            tqdm(units, desc="ROI archives", disable=not progress, dynamic_ncols=True)
        ):
            entries[idx] = run(unit)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {executor.submit(run, unit): idx for idx, unit in enumerate(units)}
            for future in tqdm(
                as_completed(future_to_index),
                total=len(units),
                desc="ROI archives",
                disable=not progress,
                dynamic_ncols=True,
            ):
                entries[future_to_index[future]] = future.result()

    result = BatchResult(entries)
    logger.debug("Batch finished: %s", dict(result.counts()))
    return result
