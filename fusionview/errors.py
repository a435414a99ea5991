"""Exceptions shared across fusionview modules."""

from typing import Iterable


class MissingCalibrationError(KeyError):
    """Raised when a camera id has no entry in a CalibrationSet."""

    def __init__(self, camera_id: str, available: Iterable[str] = ()):
        self.camera_id = camera_id
        self.available = tuple(sorted(available))
        super().__init__(camera_id)

    def __str__(self) -> str:
        available = ", ".join(self.available) or "none"
        return f"No calibration for camera '{self.camera_id}' (available: {available})"
