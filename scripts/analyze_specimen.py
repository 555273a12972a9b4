#!/usr/bin/env python3
# analyze_specimen.py
#
# Check one specimen folder and turn its ROI archives into tissue masks and
# per-tissue pixel areas.
#
# Pipeline:
# 1. Verify that every Species image has a ROI archive and an Outline
# 2. For each ROI archive: parse the image ID, read the ROIs, build the mask
#    sized like the Species image, write it to <root>/masks/
# 3. Count the pixels of each tissue class
# 4. Print a summary and optionally save the result table as CSV
#
# Expected structure under <root_folder> (e.g. Alouatta_seniculus_1170/):
#   Species/Alouatta_seniculus_1170/*.tif
#   ROI-files/Alouatta_seniculus_1170_roi/*_roi.zip
#   Outlines/Alouatta_seniculus_1170_outlined/*.tif
#
# Usage (example):
#   python scripts/analyze_specimen.py /data/Alouatta_seniculus_1170 \
#       --csv /data/Alouatta_seniculus_1170/areas.csv --debug
#
# ------------------------------------------------------------------------------

import argparse
import logging
import sys

from tissue_areas.check_specimen import check_specimen, format_report
from tissue_areas.config import SpecimenLayout
from tissue_areas.errors import MissingFolder
from tissue_areas.process_rois import process_roi, units_from_layout


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Create tissue masks and areas from the ROI archives of one specimen."
    )
    p.add_argument(
        "root_folder",
        type=str,
        help="Top-level folder of one specimen (contains Species/, ROI-files/, Outlines/).",
    )
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--debug",
        action="store_true",
        help="Print every per-image warning and the contours found in each archive.",
    )
    verbosity.add_argument(
        "--quiet",
        action="store_true",
        help="Only print the final summary.",
    )
    p.add_argument(
        "--no-save-masks",
        action="store_true",
        help="Compute areas without writing masks to <root>/masks/.",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of ROI archives processed in parallel.",
    )
    p.add_argument(
        "--csv",
        type=str,
        default=None,
        help="Optional path of a CSV file for the result table.",
    )
    p.add_argument(
        "--force",
        action="store_true",
        help="Process the ROI archives even if the folder check finds missing files.",
    )
    return p.parse_args(argv)


def configure_logging(debug: bool, quiet: bool):
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.debug, args.quiet)

    layout = SpecimenLayout(args.root_folder)

    # 1. folder check
    try:
        report = check_specimen(layout)
    except MissingFolder as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if not args.quiet:
        print(format_report(report))

    if not report.ok and not args.force:
        print("Checks failed. ROI archives will not be processed.")
        return 1
    if not args.quiet:
        print(f"Processing {report.n_roi} ROI files...")

    # 2.-3. masks + areas
    units = units_from_layout(layout, report.roi_paths)
    result = process_roi(
        units,
        report.species_ids,
        save_masks=not args.no_save_masks,
        workers=args.workers,
        progress=not args.quiet,
    )

    # 4. summary
    print(result.format_summary())
    if args.csv:
        csv_path = result.to_csv(args.csv)
        print(f"Saved result table: {csv_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
