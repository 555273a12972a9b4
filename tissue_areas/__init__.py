# tissue_areas/__init__.py
"""
tissue_areas package
--------------------

Tissue masks and per-tissue pixel areas from hand-drawn ImageJ ROIs of
histological brain sections.

Every ROI name ends in a tissue suffix (#g, #i, #a, #w, #c, #o). The ROIs of
one specimen image are rasterized, in a fixed priority order, into a single
uint8 label mask sized like the image, and the pixels of each tissue class
are counted.

Used by:

- scripts/analyze_specimen.py

Modules include:
- Specimen folder layout and completeness check (config, check_specimen)
- ROI archive decoding (read_rois) and region records (regions)
- Polygon rasterization and mask building (poly2mask, create_mask)
- Reference image / mask I/O with OpenCV (mask_io)
- Area counting (calculate_areas)
- Batch processing with per-image status (process_rois)
"""
