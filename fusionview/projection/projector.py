"""
LiDAR-to-image projection.

Projection Pipeline:
====================
For a point P in the sensor (LiDAR) frame and a camera with pose M:

    1. P_cam = M^(-1) @ P                      (sensor -> camera)
    2. cull if Z_cam <= 0                      (behind or on the camera plane)
    3. fx', fy', cx', cy' = intrinsics scaled to the target image size
    4. x = fx' * X_cam / Z_cam + cx'
       y = fy' * Y_cam / Z_cam + cy'
    5. keep if 0 <= x < W and 0 <= y < H

The depth reported with a projected point is Z_cam. All math is float64;
pixels are not rounded or clamped and lens distortion is not applied.

Back-projection (with known depth d):
=====================================
    X = (x - cx') * d / fx'
    Y = (y - cy') * d / fy'
    Z = d
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from ..calibration.camera import CameraCalibration
from ..calibration.intrinsics import CameraIntrinsics, intrinsics_for_target

Color = Tuple[int, int, int]
ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class ProjectedPoint:
    """
    A point that landed inside the image.

    Attributes:
        x: Column in pixels (float, sub-pixel).
        y: Row in pixels (float, sub-pixel).
        depth: Camera-frame Z of the source point.
        color: Optional RGB color assigned by a projection pass.
    """

    x: float
    y: float
    depth: float
    color: Optional[Color] = None

    @property
    def pixel(self) -> Tuple[int, int]:
        """Integer (column, row) for drawing."""
        return int(round(self.x)), int(round(self.y))


class ProjectionResult(NamedTuple):
    """
    Vectorized projection output, one row per input point.

    Attributes:
        pixels: (N, 2) image coordinates; NaN for points not in front of
                the camera or with non-finite input.
        depths: (N,) camera-frame Z; NaN for non-finite input.
        mask: (N,) True where the point is in front of the camera and
              inside the image.
    """

    pixels: np.ndarray
    depths: np.ndarray
    mask: np.ndarray

    @property
    def in_front(self) -> np.ndarray:
        """(N,) True where camera-frame Z is finite and positive."""
        return np.isfinite(self.depths) & (np.nan_to_num(self.depths, nan=0.0) > 0)


def _as_points(points: ArrayLike) -> np.ndarray:
    """Coerce input to an (N, 3+) float64 array."""
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if points.ndim == 1:
        points = points[np.newaxis, :]
    if points.ndim != 2 or points.shape[1] < 3:
        raise ValueError(f"Expected points of shape (N, 3+), got {points.shape}")
    return points


class Projector:
    """
    Project sensor-frame points into one camera at one target resolution.

    The intrinsics are rescaled once for the target size; the cached
    sensor-to-camera transform comes from the calibration.

    Attributes:
        calibration: Camera calibration.
        intrinsics: Intrinsics scaled to the target size.

    Example:
        >>> projector = Projector(calibration, width=960, height=540)
        >>> point = projector.project([1.0, 0.5, 12.0])
        >>> if point is not None:
        ...     print(point.x, point.y, point.depth)
    """

    def __init__(
        self,
        calibration: CameraCalibration,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        """
        Initialize the projector.

        Args:
            calibration: Camera calibration record.
            width: Target image width (defaults to the calibration width).
            height: Target image height (defaults to the calibration height).
        """
        self.calibration = calibration
        self.intrinsics: CameraIntrinsics = intrinsics_for_target(
            calibration.intrinsics, width, height
        )

    @property
    def width(self) -> int:
        return self.intrinsics.width

    @property
    def height(self) -> int:
        return self.intrinsics.height

    def to_camera(self, points: ArrayLike) -> np.ndarray:
        """Sensor-frame points (N, 3+) -> camera-frame points (N, 3)."""
        return self.calibration.extrinsics.to_camera(_as_points(points))

    def project_points(self, points: ArrayLike) -> ProjectionResult:
        """
        Project many sensor-frame points.

        Args:
            points: (N, 3) or (N, 4) points; extra columns are ignored.

        Returns:
            ProjectionResult: Full-length pixels, depths and visibility mask.
        """
        points = _as_points(points)
        n_points = len(points)

        finite = np.all(np.isfinite(points[:, :3]), axis=1)
        xyz = np.where(finite[:, np.newaxis], points[:, :3], 0.0)
        points_cam = self.calibration.extrinsics.to_camera(xyz).reshape(n_points, 3)

        depths = np.where(finite, points_cam[:, 2], np.nan)
        in_front = finite & (points_cam[:, 2] > 0)

        pixels = np.full((n_points, 2), np.nan)
        visible = points_cam[in_front]
        K = self.intrinsics
        pixels[in_front, 0] = K.fx * visible[:, 0] / visible[:, 2] + K.cx
        pixels[in_front, 1] = K.fy * visible[:, 1] / visible[:, 2] + K.cy

        mask = in_front.copy()
        if np.any(in_front):
            mask[in_front] = K.is_in_image(pixels[in_front])

        return ProjectionResult(pixels=pixels, depths=depths, mask=mask)

    def project(self, point: ArrayLike) -> Optional[ProjectedPoint]:
        """
        Project a single sensor-frame point.

        Returns:
            ProjectedPoint, or None if the point is behind the camera,
            outside the image or not finite.
        """
        point = np.asarray(point, dtype=np.float64).flatten()
        if point.shape[0] < 3:
            raise ValueError(f"Expected a 3D point, got shape {point.shape}")

        result = self.project_points(point[np.newaxis, :3])
        if not result.mask[0]:
            return None

        x, y = result.pixels[0]
        return ProjectedPoint(x=float(x), y=float(y), depth=float(result.depths[0]))

    def backproject(
        self,
        pixel: ArrayLike,
        depth: Union[float, np.ndarray],
        frame: str = "camera",
    ) -> np.ndarray:
        """
        Recover 3D point(s) from pixel(s) and camera-frame depth.

        Args:
            pixel: (2,) or (N, 2) image coordinates at the target size.
            depth: Camera-frame Z value(s).
            frame: 'camera' for camera-frame output, 'sensor' to map the
                   result back into the sensor frame.

        Returns:
            np.ndarray: (3,) or (N, 3) points.
        """
        points_cam = self.intrinsics.unproject_point(pixel, depth)
        if frame == "camera":
            return points_cam
        elif frame == "sensor":
            return self.calibration.extrinsics.to_sensor(points_cam)
        else:
            raise ValueError(f"Unknown frame: {frame}")

    def __repr__(self) -> str:
        return (
            f"Projector(camera_id={self.calibration.camera_id!r}, "
            f"size={self.width}x{self.height})"
        )


def project(
    point: ArrayLike,
    calibration: CameraCalibration,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> Optional[ProjectedPoint]:
    """
    Project one sensor-frame point into a camera image.

    Args:
        point: (3,) sensor-frame point.
        calibration: Camera calibration.
        target_width: Display width (defaults to the calibration width).
        target_height: Display height (defaults to the calibration height).

    Returns:
        ProjectedPoint or None.
    """
    return Projector(calibration, target_width, target_height).project(point)


def project_points(
    points: ArrayLike,
    calibration: CameraCalibration,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> ProjectionResult:
    """Vectorized project(); returns (pixels, depths, mask)."""
    return Projector(calibration, target_width, target_height).project_points(points)


def backproject(
    pixel: ArrayLike,
    depth: Union[float, np.ndarray],
    calibration: CameraCalibration,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> np.ndarray:
    """Camera-frame point(s) for pixel(s) at the given depth."""
    return Projector(calibration, target_width, target_height).backproject(pixel, depth)
