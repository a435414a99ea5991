"""
Camera calibration for LiDAR-camera projection.

Classes:
    CameraIntrinsics: Focal lengths, principal point and image size.
    CameraExtrinsics: Camera pose in the sensor frame with cached inverse.
    CameraCalibration: Intrinsics + extrinsics for one camera id.
    CalibrationSet: Read-only camera id -> CameraCalibration mapping.
    ParseError: Why a configuration block was skipped.

Functions:
    parse_calibration_config: Parse cameras.cfg text.
    load_calibration_file: Read and parse a cameras.cfg file.

Example Usage:
    >>> from fusionview.calibration import load_calibration_file
    >>> calibrations = load_calibration_file("frame/config/cameras.cfg")
    >>> for error in calibrations.errors:
    ...     print(error)
    >>> calib = calibrations.get("cam_1")
"""

from .camera import CalibrationSet, CameraCalibration
from .extrinsics import CameraExtrinsics
from .intrinsics import CameraIntrinsics
from .parser import ParseError, load_calibration_file, parse_calibration_config

__all__ = [
    "CameraIntrinsics",
    "CameraExtrinsics",
    "CameraCalibration",
    "CalibrationSet",
    "ParseError",
    "parse_calibration_config",
    "load_calibration_file",
]
