"""Per-camera calibration records and the per-frame calibration set."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..errors import MissingCalibrationError
from .extrinsics import CameraExtrinsics
from .intrinsics import CameraIntrinsics

if TYPE_CHECKING:
    from .parser import ParseError


@dataclass(frozen=True, eq=False)
class CameraCalibration:
    """
    Everything needed to project into one camera.

    Attributes:
        camera_id: Device id from the calibration block (``camera_dev``).
        intrinsics: Intrinsics at the calibration resolution.
        extrinsics: Camera pose in the sensor frame with cached inverse.
        install_angle_error: Reported mounting angle error (x, y, z) in
            radians. Kept for display only; projection does not apply it.
    """

    camera_id: str
    intrinsics: CameraIntrinsics
    extrinsics: CameraExtrinsics
    install_angle_error: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        angles = np.asarray(self.install_angle_error, dtype=np.float64).flatten()
        if angles.shape != (3,):
            raise ValueError(f"install_angle_error must be (3,), got {angles.shape}")
        angles.flags.writeable = False
        object.__setattr__(self, "install_angle_error", angles)

    @property
    def width(self) -> int:
        return self.intrinsics.width

    @property
    def height(self) -> int:
        return self.intrinsics.height

    def __repr__(self) -> str:
        return (
            f"CameraCalibration(camera_id={self.camera_id!r}, "
            f"size={self.width}x{self.height})"
        )


class CalibrationSet(Mapping):
    """
    Read-only mapping of camera id -> CameraCalibration for one frame.

    Built wholesale by the calibration parser and never mutated afterwards.
    Problems found while parsing are kept in ``errors`` so a host can show
    which cameras are unavailable and why.

    Example:
        >>> calibrations = parse_calibration_config(text)
        >>> calib = calibrations.get("cam_1")       # None when missing
        >>> calib = calibrations.require("cam_1")   # raises MissingCalibrationError
    """

    def __init__(
        self,
        cameras: Optional[Dict[str, CameraCalibration]] = None,
        errors: Tuple["ParseError", ...] = (),
    ):
        self._cameras = MappingProxyType(dict(cameras or {}))
        self.errors: Tuple["ParseError", ...] = tuple(errors)

    def __getitem__(self, camera_id: str) -> CameraCalibration:
        try:
            return self._cameras[camera_id]
        except KeyError:
            raise MissingCalibrationError(camera_id, self._cameras.keys()) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._cameras)

    def __len__(self) -> int:
        return len(self._cameras)

    def require(self, camera_id: str) -> CameraCalibration:
        """Return the calibration for camera_id or raise MissingCalibrationError."""
        return self[camera_id]

    @property
    def camera_ids(self) -> List[str]:
        return list(self._cameras)

    @property
    def ok(self) -> bool:
        """True when at least one camera is calibrated and nothing was skipped."""
        return bool(self._cameras) and not self.errors

    def __repr__(self) -> str:
        return f"CalibrationSet(cameras={self.camera_ids}, errors={len(self.errors)})"
