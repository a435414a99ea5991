"""
Tests for the cameras.cfg parser.

Test Coverage:
- Well-formed multi-camera files
- Per-block errors: missing/invalid fields, zero quaternion, no camera_dev
- Duplicate ids, empty input, garbage input, unterminated blocks
- File loading
"""

import logging

import numpy as np
import pytest

from fusionview.calibration import (
    CalibrationSet,
    ParseError,
    load_calibration_file,
    parse_calibration_config,
)


def make_block(camera_id="cam_1", drop=(), **overrides):
    """Build one config block; ``drop`` removes keys, overrides replace values."""
    fields = {
        "camera_dev": f'"{camera_id}"',
        "img_width": "1920",
        "img_height": "1080",
        "f_x": "1000.0",
        "f_y": "1000.0",
        "o_x": "960.0",
        "o_y": "540.0",
    }
    fields.update(overrides)
    lines = [f"  {k}: {v}" for k, v in fields.items() if k not in drop]
    if "position" not in drop:
        lines.append("  position { x: 0.1 y: 0.2 z: 0.3 }")
    if "orientation" not in drop:
        lines.append("  orientation { qx: 0.0 qy: 0.0 qz: 0.0 qw: 1.0 }")
    return "config {\n" + "\n".join(lines) + "\n}\n"


# =============================================================================
# Well-formed input
# =============================================================================

class TestParseValid:
    """Parsing of well-formed configuration text."""

    def test_two_cameras(self, camera_cfg_text):
        calibrations = parse_calibration_config(camera_cfg_text)

        assert isinstance(calibrations, CalibrationSet)
        assert calibrations.camera_ids == ["cam_1", "cam_2"]
        assert calibrations.errors == ()
        assert calibrations.ok

    def test_intrinsics_values(self, camera_cfg_text):
        calib = parse_calibration_config(camera_cfg_text)["cam_2"]

        assert calib.intrinsics.width == 1920
        assert calib.intrinsics.height == 1080
        assert calib.intrinsics.fx == 1200.0
        assert calib.intrinsics.cy == 540.0
        assert calib.intrinsics.model == "PINHOLE"

    def test_distortion_parsed_and_defaulted(self, camera_cfg_text):
        calibrations = parse_calibration_config(camera_cfg_text)

        assert calibrations["cam_1"].intrinsics.distortion == (0.0, 0.0, 0.0, 0.0)
        assert calibrations["cam_2"].intrinsics.distortion == (-0.1, 0.01, 0.0, 0.0)

    def test_install_angle_error(self, camera_cfg_text):
        calibrations = parse_calibration_config(camera_cfg_text)

        assert np.allclose(calibrations["cam_1"].install_angle_error, [0, 0, 0])
        assert np.allclose(calibrations["cam_2"].install_angle_error, [0.001, -0.002, 0.0])

    def test_extrinsics_are_inverted_pose(self, camera_cfg_text):
        """cam_2 sits at z = -10, so the sensor origin is 10 m in front of it."""
        ext = parse_calibration_config(camera_cfg_text)["cam_2"].extrinsics

        assert np.allclose(ext.position, [0.0, 0.0, -10.0])
        assert np.allclose(ext.to_camera([0.0, 0.0, 0.0]), [0.0, 0.0, 10.0])

    def test_nested_keys_are_found(self):
        text = """
        config {
          camera_dev: "wrapped"
          intrinsic {
            size { img_width: 640 img_height: 480 }
            f_x: 500 f_y: 500 o_x: 320 o_y: 240
          }
          extrinsic {
            position { x: 1 y: 2 z: 3 }
            orientation { qx: 0 qy: 0 qz: 0 qw: 1 }
          }
        }
        """
        calibrations = parse_calibration_config(text)

        assert calibrations.errors == ()
        calib = calibrations["wrapped"]
        assert calib.intrinsics.size == (640, 480)
        assert np.allclose(calib.extrinsics.position, [1, 2, 3])

    def test_comments_are_ignored(self):
        text = "# header\n" + make_block().replace(
            "  f_x: 1000.0", "  f_x: 1000.0  # focal x\n  # f_x: 1.0"
        )
        calib = parse_calibration_config(text)["cam_1"]

        assert calib.intrinsics.fx == 1000.0

    def test_unquoted_camera_id(self):
        text = make_block().replace('"cam_1"', "cam_front")

        assert "cam_front" in parse_calibration_config(text)

    def test_quaternion_normalized(self):
        text = make_block().replace("qw: 1.0", "qw: 4.0")
        calib = parse_calibration_config(text)["cam_1"]

        assert np.allclose(calib.extrinsics.orientation, [0, 0, 0, 1])

    def test_comma_and_semicolon_separators(self):
        text = (
            'config { camera_dev: "cam_c", img_width: 100; img_height: 80,\n'
            "  f_x: 50.0, f_y: 60.0; o_x: 50, o_y: 40;\n"
            "  position: { x: 1.0, y: -2.0; z: 3.0 }\n"
            "  orientation: { qx: 0, qy: 0, qz: 0, qw: 1 }\n"
            "}\n"
        )

        calibrations = parse_calibration_config(text)

        assert calibrations.ok
        calib = calibrations["cam_c"]
        assert calib.intrinsics.size == (100, 80)
        assert (calib.intrinsics.fx, calib.intrinsics.fy) == (50.0, 60.0)
        assert (calib.intrinsics.cx, calib.intrinsics.cy) == (50.0, 40.0)
        assert np.allclose(calib.extrinsics.position, [1.0, -2.0, 3.0])
        assert np.allclose(calib.extrinsics.orientation, [0, 0, 0, 1])


# =============================================================================
# Per-block errors
# =============================================================================

class TestParseErrors:
    """Blocks with problems are skipped and reported."""

    def test_missing_camera_dev(self):
        text = make_block(drop=("camera_dev",)) + make_block("cam_2")
        calibrations = parse_calibration_config(text)

        assert calibrations.camera_ids == ["cam_2"]
        assert len(calibrations.errors) == 1
        error = calibrations.errors[0]
        assert isinstance(error, ParseError)
        assert error.block_index == 0
        assert error.camera_id is None
        assert error.missing_fields == ("camera_dev",)

    def test_missing_intrinsics_listed(self):
        calibrations = parse_calibration_config(make_block(drop=("f_x", "o_y")))

        assert len(calibrations) == 0
        error = calibrations.errors[0]
        assert error.camera_id == "cam_1"
        assert set(error.missing_fields) == {"f_x", "o_y"}
        assert "f_x" in error.message

    @pytest.mark.parametrize("key,value", [
        ("img_width", "0"),
        ("img_height", "-1080"),
        ("img_width", "12.5"),
        ("f_x", "0"),
        ("f_y", "-3"),
        ("f_x", "abc"),
        ("o_x", "nan"),
    ])
    def test_invalid_values(self, key, value):
        calibrations = parse_calibration_config(make_block(**{key: value}))

        assert len(calibrations) == 0
        assert calibrations.errors[0].invalid_fields == (key,)

    def test_missing_position(self):
        calibrations = parse_calibration_config(make_block(drop=("position",)))

        error = calibrations.errors[0]
        assert set(error.missing_fields) == {"position.x", "position.y", "position.z"}

    def test_missing_orientation_component(self):
        text = make_block().replace("qz: 0.0 ", "")
        calibrations = parse_calibration_config(text)

        assert len(calibrations) == 0
        assert calibrations.errors[0].missing_fields == ("orientation.qz",)

    def test_zero_quaternion(self):
        text = make_block().replace("qw: 1.0", "qw: 0.0")
        calibrations = parse_calibration_config(text)

        assert len(calibrations) == 0
        assert "orientation" in calibrations.errors[0].invalid_fields

    def test_bad_block_does_not_stop_parsing(self):
        text = make_block("cam_1") + make_block("cam_2", f_x="-1") + make_block("cam_3")
        calibrations = parse_calibration_config(text)

        assert calibrations.camera_ids == ["cam_1", "cam_3"]
        assert [e.block_index for e in calibrations.errors] == [1]
        assert calibrations.errors[0].camera_id == "cam_2"
        assert not calibrations.ok

    def test_skipped_block_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            parse_calibration_config(make_block(drop=("f_y",)))

        assert any("f_y" in r.getMessage() for r in caplog.records)

    def test_error_str(self):
        error = parse_calibration_config(make_block(drop=("f_x",))).errors[0]

        assert str(error) == "block 0 (cam_1): missing f_x"


# =============================================================================
# Whole-text edge cases
# =============================================================================

class TestParseEdgeCases:
    """Duplicates, empty and malformed text."""

    def test_duplicate_ids_later_wins(self, caplog):
        text = make_block("cam_1") + make_block("cam_1", f_x="2000.0")

        with caplog.at_level(logging.WARNING):
            calibrations = parse_calibration_config(text)

        assert len(calibrations) == 1
        assert calibrations["cam_1"].intrinsics.fx == 2000.0
        assert any("Duplicate" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("text", ["", "   \n\n", "# only a comment\n", "camera { x: 1 }"])
    def test_no_config_blocks(self, text):
        calibrations = parse_calibration_config(text)

        assert len(calibrations) == 0
        assert len(calibrations.errors) == 1
        assert calibrations.errors[0].block_index is None

    @pytest.mark.parametrize("text", [
        "}}}{{ ::: \"",
        "config { config { } } }",
        "config {\n camera_dev: \"x\"\n f_x: {\n}",
        "\x00\x01binary",
    ])
    def test_garbage_never_raises(self, text):
        calibrations = parse_calibration_config(text)

        assert isinstance(calibrations, CalibrationSet)

    def test_unterminated_last_block(self, caplog):
        text = make_block("cam_1") + make_block("cam_2").rstrip().rstrip("}")

        with caplog.at_level(logging.WARNING):
            calibrations = parse_calibration_config(text)

        assert calibrations.camera_ids == ["cam_1", "cam_2"]
        assert any("open block" in r.getMessage() for r in caplog.records)


# =============================================================================
# File loading
# =============================================================================

class TestLoadCalibrationFile:

    def test_load(self, tmp_path, camera_cfg_text):
        path = tmp_path / "cameras.cfg"
        path.write_text(camera_cfg_text, encoding="utf-8")

        calibrations = load_calibration_file(path)

        assert calibrations.camera_ids == ["cam_1", "cam_2"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_calibration_file(tmp_path / "nope.cfg")
