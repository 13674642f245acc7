import json
import logging
import os
from pathlib import Path

import numpy as np
import pytest

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError
from mono_calib.io.calibration_file import CalibrationFile, CalibrationFileFormat
from mono_calib.io.formats.base import FieldNames


@pytest.fixture
def params():
    rng = np.random.default_rng(3)
    return CalibrationParameters(
        camera_matrix=np.array(
            [[612.3456789012345, 0.0, 318.25], [0.0, 610.987654321, 241.5], [0.0, 0.0, 1.0]]
        ),
        distortion_coeffs=np.array([[-0.1234567, 0.0456, 0.00012, -0.00034, 0.0078]]),
        rotation=rng.normal(size=(10, 3)),
        translation=rng.normal(size=(10, 3)) * 10,
    )


def _assert_same(loaded, expected):
    for name in ("camera_matrix", "distortion_coeffs", "rotation", "translation"):
        np.testing.assert_allclose(
            getattr(loaded, name), getattr(expected, name), rtol=1e-12, atol=0
        )
        assert getattr(loaded, name).shape == getattr(expected, name).shape


def test_yaml_round_trip_keeps_values_names_and_order(tmp_path, params):
    path = CalibrationFile.save(tmp_path / "intrinsics.yml", params)

    text = path.read_text()
    positions = [text.index(f"{name}:") for name in FieldNames.DEFAULT.as_tuple()]
    assert positions == sorted(positions)
    assert "dt: d" in text

    _assert_same(CalibrationFile.load(path), params)


def test_legacy_field_names(tmp_path, params):
    path = CalibrationFile.save(tmp_path / "legacy.yml", params, field_names=FieldNames.LEGACY)

    text = path.read_text()
    for name in ("CAMERA_MATRIX_LEFT", "DISTCOEFFS_RIGHT", "ROTATION_MATRIX", "TRASLATION_VECTOR"):
        assert f"{name}:" in text
    assert "DISTORTION_COEFFICIENTS" not in text

    _assert_same(CalibrationFile.load(path), params)


def test_save_overwrites_previous_content(tmp_path, params):
    path = tmp_path / "intrinsics.yml"
    CalibrationFile.save(path, params, field_names=FieldNames.LEGACY)
    CalibrationFile.save(path, params)

    text = path.read_text()
    assert "CAMERA_MATRIX_LEFT" not in text
    assert "CAMERA_MATRIX:" in text


def test_missing_directory_fails_without_writing(tmp_path, params):
    target = tmp_path / "calibration_setup" / "intrinsics.yml"

    with pytest.raises(PersistenceError, match="does not exist"):
        CalibrationFile.save(target, params)

    assert not target.exists()
    assert not target.parent.exists()


def test_directory_as_target_fails(tmp_path, params):
    (tmp_path / "out.yml").mkdir()
    with pytest.raises(PersistenceError):
        CalibrationFile.save(tmp_path / "out.yml", params)


@pytest.mark.parametrize("filename", ["intrinsics.yml", "intrinsics.json", "intrinsics.h5", "intrinsics.mat"])
def test_read_only_directory_fails_without_writing(tmp_path, params, monkeypatch, filename):
    real_access = os.access
    monkeypatch.setattr(
        os, "access", lambda p, mode: Path(p) != tmp_path and real_access(p, mode)
    )
    target = tmp_path / filename

    with pytest.raises(PersistenceError, match="not writable"):
        CalibrationFile.save(target, params)

    assert not target.exists()


def test_read_only_file_is_left_untouched(tmp_path, params, monkeypatch):
    target = tmp_path / "intrinsics.yml"
    target.write_text("previous contents")
    real_access = os.access
    monkeypatch.setattr(
        os, "access", lambda p, mode: Path(p) != target and real_access(p, mode)
    )

    with pytest.raises(PersistenceError, match="not writable"):
        CalibrationFile.save(target, params)

    assert target.read_text() == "previous contents"


def test_bare_name_defaults_to_yaml(tmp_path, params):
    path = CalibrationFile.save(tmp_path / "intrinsics", params)
    assert path.suffix == ".yml"
    assert path.exists()


def test_unknown_extension_is_rejected(tmp_path, params):
    with pytest.raises(FileFormatError):
        CalibrationFile.save(tmp_path / "intrinsics.txt", params)


@pytest.mark.parametrize("filename", ["intrinsics.json", "intrinsics.h5", "intrinsics.mat"])
def test_other_formats_round_trip(tmp_path, params, filename):
    path = CalibrationFile.save(tmp_path / filename, params)
    _assert_same(CalibrationFile.load(path), params)


def test_json_layout(tmp_path, params):
    path = CalibrationFile.save(tmp_path / "intrinsics.json", params)

    data = json.loads(path.read_text())
    field_keys = [k for k in data if not k.startswith("format_")]
    assert field_keys == list(FieldNames.DEFAULT.as_tuple())
    assert np.array(data["CAMERA_MATRIX"]).shape == (3, 3)


def test_format_detected_from_content(tmp_path, params):
    path = CalibrationFile.save(tmp_path / "intrinsics.yml", params)
    renamed = path.rename(tmp_path / "intrinsics.params")

    _assert_same(CalibrationFile.load(renamed), params)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileFormatError):
        CalibrationFile.load(tmp_path / "nope.yml")


def test_load_rejects_file_without_fields(tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"something": 1}))
    with pytest.raises(FileFormatError):
        CalibrationFile.load(path)


def test_extension_mapping():
    assert CalibrationFileFormat.from_extension(".yaml") is CalibrationFileFormat.OPENCV
    assert CalibrationFileFormat.from_extension("HDF5") is CalibrationFileFormat.HDF5
    assert ".mat" in CalibrationFile.get_supported_extensions()


def test_writes_and_foreign_files_are_logged(tmp_path, params, caplog):
    with caplog.at_level(logging.DEBUG, logger="mono_calib"):
        CalibrationFile.save(tmp_path / "intrinsics.yml", params)
        path = CalibrationFile.save(tmp_path / "intrinsics.json", params)
        data = json.loads(path.read_text())
        del data["format_type"]
        path.write_text(json.dumps(data))
        CalibrationFile.load(path)

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Wrote 4 fields to") for m in messages)
    assert any(m.startswith("Wrote JSON parameters to") for m in messages)
    assert any(m.startswith("Unknown format type") for m in messages)
