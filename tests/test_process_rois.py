from pathlib import Path

import numpy as np
import pytest
import roifile

from tissue_areas.config import SpecimenLayout
from tissue_areas.errors import DecodeFailed, InvalidInput, MaskWriteFailed, TabulationFailed
from tissue_areas.mask_io import read_mask
from tissue_areas.process_rois import (
    NO_ROIS_WARNING,
    RESULT_COLUMNS,
    RoiUnit,
    Stage,
    UnitStatus,
    process_roi,
    units_from_layout,
)
from tissue_areas.tissue_codes import TissueCode

from helpers import region, square, write_image

NAME = "spec"


def unit(sid, tmp_path=Path("/data"), **kwargs):
    defaults = dict(
        roi_path=tmp_path / f"{NAME}_{sid}_roi.zip",
        specimen_name=NAME,
        root_path=tmp_path,
        reference_path=tmp_path / f"{NAME}_{sid}.tif",
        mask_path=None,
    )
    defaults.update(kwargs)
    return RoiUnit(**defaults)


def fake_decoder(sets):
    """Decoder serving region lists by image ID; an exception instance is raised."""

    def decode(roi_path):
        sid = Path(roi_path).stem.split("_")[-2]
        value = sets[sid]
        if isinstance(value, Exception):
            raise value
        return value

    return decode


def shape_10x10(path):
    return (10, 10)


GOOD = [region("cortex#g", 0, 0, 10, 10), region("hole#o", 3, 3, 6, 6)]


def test_failed_decode_does_not_stop_batch():
    units = [unit("001"), unit("002"), unit("003")]
    decoder = fake_decoder({"001": GOOD, "002": DecodeFailed("corrupt"), "003": GOOD})

    result = process_roi(units, ["001", "002", "003"], decoder=decoder, reference_shape=shape_10x10)

    assert len(result) == 3
    assert [e.status for e in result] == [UnitStatus.DONE, UnitStatus.FAILED, UnitStatus.DONE]
    assert result[1].stage is Stage.IDENTIFIED
    assert "corrupt" in result[1].reason
    assert result[1].areas is None
    for e in (result[0], result[2]):
        assert e.stage is Stage.DONE
        assert e.n_rois == 2
        assert e.areas[TissueCode.NEOCORTICAL_GM] == 91
    assert result.counts() == {"done": 2, "skipped": 0, "failed": 1}


def test_unexpected_decoder_error_is_a_decode_failure():
    decoder = fake_decoder({"001": ValueError("boom")})
    result = process_roi([unit("001")], ["001"], decoder=decoder, reference_shape=shape_10x10)
    assert result[0].status is UnitStatus.FAILED
    assert result[0].reason.startswith("DecodeFailed")


def test_unknown_ids_are_skipped():
    units = [unit("001"), unit("002"), unit("x", roi_path=Path("/data/no_id.zip"))]
    decoder = fake_decoder({"001": GOOD, "002": GOOD})

    result = process_roi(units, ["001"], decoder=decoder, reference_shape=shape_10x10)

    assert [e.status for e in result] == [UnitStatus.DONE, UnitStatus.SKIPPED, UnitStatus.SKIPPED]
    assert result[1].image_id == "002"
    assert "not in speciesIDs" in result[1].reason
    assert result[2].image_id is None
    assert result[2].stage is Stage.PENDING


def test_bad_region_name_fails_only_its_unit():
    decoder = fake_decoder({
        "001": GOOD,
        "002": [region("cortex#g", 0, 0, 10, 10), region("weird#x", 0, 0, 2, 2)],
        "003": [region("wm#w", 0, 0, 5, 5)],
    })
    result = process_roi(
        [unit("001"), unit("002"), unit("003")],
        ["001", "002", "003"],
        decoder=decoder,
        reference_shape=shape_10x10,
    )
    assert [e.status for e in result] == [UnitStatus.DONE, UnitStatus.FAILED, UnitStatus.DONE]
    assert result[1].reason.startswith("InvalidRegionName")
    assert result[1].stage is Stage.DECODED
    assert result[0].areas[TissueCode.NEOCORTICAL_GM] == 91
    assert result[2].areas[TissueCode.WHITE] == 25


def test_empty_region_set_fails():
    result = process_roi([unit("001")], ["001"], decoder=fake_decoder({"001": []}), reference_shape=shape_10x10)
    assert result[0].status is UnitStatus.FAILED
    assert result[0].n_rois == 0
    assert result[0].reason.startswith("InvalidInput")


def test_missing_reference_fails(tmp_path):
    units = [unit("001", reference_path=None), unit("002", tmp_path)]
    decoder = fake_decoder({"001": GOOD, "002": GOOD})
    result = process_roi(units, ["001", "002"], decoder=decoder)
    assert [e.status for e in result] == [UnitStatus.FAILED, UnitStatus.FAILED]
    assert all(e.reason.startswith("ReferenceUnavailable") for e in result)


def test_mask_write_failure_fails_unit():
    def broken_writer(mask, path):
        raise MaskWriteFailed("disk full")

    result = process_roi(
        [unit("001", mask_path=Path("/data/masks/m.tif"))],
        ["001"],
        decoder=fake_decoder({"001": GOOD}),
        reference_shape=shape_10x10,
        mask_writer=broken_writer,
    )
    assert result[0].status is UnitStatus.FAILED
    assert "disk full" in result[0].reason
    assert result[0].mask_path is None


def test_save_masks_false_skips_writer():
    written = []
    result = process_roi(
        [unit("001", mask_path=Path("/data/masks/m.tif"))],
        ["001"],
        decoder=fake_decoder({"001": GOOD}),
        reference_shape=shape_10x10,
        mask_writer=lambda mask, path: written.append(path),
        save_masks=False,
    )
    assert result[0].status is UnitStatus.DONE
    assert written == []
    assert result[0].mask_path is None


def test_tabulation_failure_gives_zero_counts(monkeypatch, caplog):
    def broken(mask):
        raise TabulationFailed("bad grid")

    monkeypatch.setattr("tissue_areas.process_rois.calculate_areas", broken)
    with caplog.at_level("WARNING"):
        result = process_roi(
            [unit("001")], ["001"], decoder=fake_decoder({"001": GOOD}), reference_shape=shape_10x10
        )

    entry = result[0]
    assert entry.status is UnitStatus.DONE
    assert entry.areas == {code: 0 for code in entry.areas}
    assert len(entry.areas) == 4
    assert entry.warnings and "bad grid" in entry.warnings[0]
    assert "Area calculation failed" in caplog.text


def test_regions_are_annotated_before_masking(monkeypatch):
    seen = []

    def spy(regions, reference_path, **kwargs):
        seen.extend(regions)
        return np.zeros((4, 4), dtype=np.uint8)

    monkeypatch.setattr("tissue_areas.process_rois.build_unit_mask", spy)
    process_roi([unit("007")], ["007"], decoder=fake_decoder({"007": GOOD}))

    assert len(seen) == 2
    for r in seen:
        assert r.specimen_name == NAME
        assert r.image_id == "007"
        assert r.root_path == Path("/data")
        assert r.roi_path == Path("/data/spec_007_roi.zip")


@pytest.mark.parametrize(
    "units, ids",
    [
        ("spec_001_roi.zip", ["001"]),
        ([Path("spec_001_roi.zip")], ["001"]),
        (None, ["001"]),
        ([], "001"),
        ([], [1]),
        ([], None),
    ],
)
def test_invalid_batch_input_raises(units, ids):
    with pytest.raises(InvalidInput):
        process_roi(units, ids)


def test_invalid_workers():
    with pytest.raises(InvalidInput):
        process_roi([], [], workers=0)


def test_empty_batch():
    result = process_roi([], [])
    assert len(result) == 0
    assert result.counts() == {"done": 0, "skipped": 0, "failed": 0}
    assert list(result.to_frame().columns) == RESULT_COLUMNS


def test_parallel_run_keeps_input_order():
    ids = [f"{i:03d}" for i in range(12)]

    def decode(roi_path):
        sid = Path(roi_path).stem.split("_")[-2]
        if int(sid) % 4 == 1:
            raise DecodeFailed("odd one")
        size = int(sid) + 1
        return [region(f"r{sid}#w", 0, 0, size, 1)]

    units = [unit(sid) for sid in ids]
    serial = process_roi(units, ids, decoder=decode, reference_shape=lambda p: (2, 20))
    parallel = process_roi(units, ids, decoder=decode, reference_shape=lambda p: (2, 20), workers=4)

    assert [e.roi_path for e in parallel] == [u.roi_path for u in units]
    assert [e.status for e in parallel] == [e.status for e in serial]
    assert [e.areas for e in parallel] == [e.areas for e in serial]
    assert parallel[3].areas[TissueCode.WHITE] == 4


def test_frame_and_summary():
    units = [unit("001"), unit("002"), unit("003")]
    decoder = fake_decoder({"001": GOOD, "002": DecodeFailed("corrupt"), "003": GOOD})
    result = process_roi(units, ["001", "002"], decoder=decoder, reference_shape=shape_10x10)

    df = result.to_frame()
    assert list(df.columns) == RESULT_COLUMNS
    assert list(df["status"]) == ["done", "failed", "skipped"]
    assert df.loc[0, "NeocorticalGM"] == 91
    assert df.loc[0, "n_rois"] == 2
    assert df["White"].isna().tolist() == [False, True, True]

    summary = result.format_summary().splitlines()
    assert summary[0] == f"Summary for specimen: {NAME}"
    assert summary[1] == f"{NAME}_001_roi\t001\tdone\tN RoIs: [2]"
    assert summary[2].startswith(f"{NAME}_002_roi\t002\tfailed\t{NO_ROIS_WARNING}")
    assert NO_ROIS_WARNING in summary[3]
    assert summary[-1] == "Done: 1, skipped: 1, failed: 1"


def test_end_to_end_with_specimen_folder(tmp_path):
    layout = SpecimenLayout(tmp_path / NAME)
    write_image(layout.image_path("001"), 10, 10)
    write_image(layout.image_path("002"), 8, 12)
    layout.roi_dir.mkdir(parents=True)

    def archive(sid, shapes):
        rois = [
            roifile.ImagejRoi.frompoints(np.asarray(pts, dtype=np.int32), name=name)
            for name, pts in shapes
        ]
        roifile.roiwrite(str(layout.roi_path(sid)), rois)

    archive("001", [("cortex#g", square(0, 0, 10, 10)), ("hole#o", square(3, 3, 6, 6))])
    archive("002", [("wm#w", square(0, 0, 12, 8)), ("cb#c", square(0, 0, 4, 8))])

    units = units_from_layout(layout)
    assert [u.image_id for u in units] == ["001", "002"]

    result = process_roi(units, ["001", "002"])

    assert [e.status for e in result] == [UnitStatus.DONE, UnitStatus.DONE]
    assert result[0].areas[TissueCode.NEOCORTICAL_GM] == 91
    assert result[1].areas[TissueCode.WHITE] == 64
    assert result[1].areas[TissueCode.CEREBELLUM] == 32

    mask = read_mask(layout.mask_path("002"))
    assert mask.shape == (8, 12)
    assert (mask == 3).sum() == 32

    csv_path = result.to_csv(tmp_path / "out" / "areas.csv")
    assert csv_path.read_text().splitlines()[0] == ",".join(RESULT_COLUMNS)


@pytest.mark.parametrize("workers", [1, 3])
def test_reference_os_error_fails_only_its_unit(workers):
    def reference_shape(path):
        if "_002" in str(path):
            raise OSError("cannot identify image file")
        return (10, 10)

    ids = ["001", "002", "003"]
    result = process_roi(
        [unit(sid) for sid in ids],
        ids,
        decoder=fake_decoder({sid: GOOD for sid in ids}),
        reference_shape=reference_shape,
        workers=workers,
    )

    assert len(result) == 3
    assert [e.status for e in result] == [UnitStatus.DONE, UnitStatus.FAILED, UnitStatus.DONE]
    assert result[1].reason.startswith("ReferenceUnavailable")
    assert "cannot identify image file" in result[1].reason
    assert result[0].areas[TissueCode.NEOCORTICAL_GM] == 91
    assert result[2].areas[TissueCode.NEOCORTICAL_GM] == 91


@pytest.mark.parametrize("workers", [1, 2])
def test_writer_os_error_fails_only_its_unit(workers):
    def writer(mask, path):
        if "_001" in str(path):
            raise PermissionError("read-only file system")

    ids = ["001", "002"]
    result = process_roi(
        [unit(sid, mask_path=Path(f"/data/masks/{NAME}_{sid}_mask.tif")) for sid in ids],
        ids,
        decoder=fake_decoder({sid: GOOD for sid in ids}),
        reference_shape=shape_10x10,
        mask_writer=writer,
        workers=workers,
    )

    assert [e.status for e in result] == [UnitStatus.FAILED, UnitStatus.DONE]
    assert result[0].reason.startswith("MaskWriteFailed")
    assert result[0].mask_path is None
    assert result[1].mask_path == Path(f"/data/masks/{NAME}_002_mask.tif")


def test_malformed_decoder_output_fails_unit():
    result = process_roi(
        [unit("001"), unit("002")],
        ["001", "002"],
        decoder=fake_decoder({"001": ["cortex#g"], "002": GOOD}),
        reference_shape=shape_10x10,
    )
    assert [e.status for e in result] == [UnitStatus.FAILED, UnitStatus.DONE]
    assert result[0].reason.startswith("DecodeFailed")


def test_parallel_end_to_end_creates_mask_folder(tmp_path):
    layout = SpecimenLayout(tmp_path / NAME)
    layout.roi_dir.mkdir(parents=True)
    ids = [f"{i:03d}" for i in range(1, 9)]
    for i, sid in enumerate(ids, start=1):
        write_image(layout.image_path(sid), 10, 10)
        rois = [
            roifile.ImagejRoi.frompoints(np.asarray(square(0, 0, 10, 10), dtype=np.int32), name="cortex#g"),
            roifile.ImagejRoi.frompoints(np.asarray(square(0, 0, i, 1), dtype=np.int32), name="wm#w"),
        ]
        roifile.roiwrite(str(layout.roi_path(sid)), rois)
    assert not layout.masks_dir.exists()

    result = process_roi(units_from_layout(layout), ids, save_masks=True, workers=4)

    assert [e.status for e in result] == [UnitStatus.DONE] * len(ids)
    for i, (sid, entry) in enumerate(zip(ids, result), start=1):
        assert entry.mask_path == layout.mask_path(sid)
        mask = read_mask(layout.mask_path(sid))
        assert mask.shape == (10, 10)
        assert (mask == TissueCode.WHITE).sum() == i
        assert entry.areas[TissueCode.WHITE] == i
        assert entry.areas[TissueCode.NEOCORTICAL_GM] == 100 - i
