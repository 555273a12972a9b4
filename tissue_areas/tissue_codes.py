# -*- coding: utf-8 -*-
"""
tissue_codes.py - tissue labels and the suffix grammar of ROI names.

Every ROI name ends in a two-character token ``#<letter>`` that selects the
tissue class written into the mask:

    #g  neocortical gray matter   -> 1
    #i  inner gray matter         -> 1
    #a  archicortical gray matter -> 4
    #w  white matter              -> 2
    #c  cerebellum                -> 3
    #o  outer only                -> 0 (clears anything underneath)

``TIERS`` is the fill order used by ``create_mask``: each tier overwrites the
pixels of the previous ones, and the outer-only tier always runs last.
"""

from __future__ import annotations
from collections import OrderedDict, namedtuple
from enum import IntEnum
import re

from .errors import InvalidRegionName

__all__ = [
    "TissueCode",
    "SUFFIX_CODES",
    "Tier",
    "TIERS",
    "AREA_COLUMNS",
    "region_suffix",
    "suffix_code",
]


class TissueCode(IntEnum):
    BACKGROUND = 0
    NEOCORTICAL_GM = 1
    WHITE = 2
    CEREBELLUM = 3
    ARCHICORTICAL_GM = 4


SUFFIX_CODES = {
    "#g": TissueCode.NEOCORTICAL_GM,
    "#i": TissueCode.NEOCORTICAL_GM,
    "#a": TissueCode.ARCHICORTICAL_GM,
    "#w": TissueCode.WHITE,
    "#c": TissueCode.CEREBELLUM,
    "#o": TissueCode.BACKGROUND,
}

Tier = namedtuple("Tier", ["name", "suffixes", "code"])

# Fill order, first to last. Later tiers win on overlap.
TIERS = (
    Tier("gray", frozenset({"#g", "#i"}), TissueCode.NEOCORTICAL_GM),
    Tier("archicortical", frozenset({"#a"}), TissueCode.ARCHICORTICAL_GM),
    Tier("white", frozenset({"#w"}), TissueCode.WHITE),
    Tier("cerebellum", frozenset({"#c"}), TissueCode.CEREBELLUM),
    Tier("outer", frozenset({"#o"}), TissueCode.BACKGROUND),
)

# Result columns, in the order of the area table
AREA_COLUMNS = OrderedDict([
    (TissueCode.NEOCORTICAL_GM, "NeocorticalGM"),
    (TissueCode.WHITE, "White"),
    (TissueCode.CEREBELLUM, "Cerebellum"),
    (TissueCode.ARCHICORTICAL_GM, "ArchicorticalGM"),
])

_SUFFIX_RE = re.compile(r"#.\Z", re.DOTALL)


def region_suffix(name: str) -> str:
    """
    Return the tissue suffix token (e.g. ``"#w"``) at the end of a ROI name.

    Raises
    ------
    InvalidRegionName
        If ``name`` does not end in ``#`` plus one character, or if that token
        is not one of the known suffixes.
    """
    if not isinstance(name, str):
        raise InvalidRegionName(repr(name))
    match = _SUFFIX_RE.search(name)
    if match is None or match.group(0) not in SUFFIX_CODES:
        raise InvalidRegionName(name)
    return match.group(0)


def suffix_code(name: str) -> TissueCode:
    """Tissue code written for a ROI name."""
    return SUFFIX_CODES[region_suffix(name)]
