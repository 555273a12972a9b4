# -*- coding: utf-8 -*-
"""
errors.py - exception types raised by the tissue_areas pipeline.

Batch-level problems (``InvalidInput`` on the unit list, ``MissingFolder`` on
the specimen layout) are raised to the caller. Everything else is raised
inside the per-unit pipeline and turned into a unit status by
``process_rois.process_roi``.
"""

from __future__ import annotations

__all__ = [
    "TissueAreasError",
    "InvalidInput",
    "MissingFolder",
    "IdentifierNotMatched",
    "DecodeFailed",
    "ReferenceUnavailable",
    "InvalidRegionName",
    "MaskWriteFailed",
    "MaskReadFailed",
    "TabulationFailed",
]


class TissueAreasError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInput(TissueAreasError):
    """Malformed unit list, identifier list or region set."""


class MissingFolder(TissueAreasError):
    """A specimen folder required by the layout does not exist."""


class IdentifierNotMatched(TissueAreasError):
    """The image identifier of a unit cannot be derived or is not expected."""


class DecodeFailed(TissueAreasError):
    """A ROI archive could not be decoded into regions."""


class ReferenceUnavailable(TissueAreasError):
    """The reference image dimensions could not be obtained."""


class InvalidRegionName(TissueAreasError):
    """A region name does not end in a recognised tissue suffix."""

    def __init__(self, name: str):
        super().__init__(f"Invalid ROI name {name!r}: expected a suffix like '#g', '#w', '#o'")
        self.name = name


class MaskWriteFailed(TissueAreasError):
    """A finished mask could not be written to disk."""


class MaskReadFailed(TissueAreasError):
    """A stored mask could not be read back."""


class TabulationFailed(TissueAreasError):
    """Pixel areas could not be counted on a mask."""
