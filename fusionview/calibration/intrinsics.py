"""
Camera Intrinsic Parameters Module.

The intrinsic matrix K maps a point in the camera frame to pixels:

    K = | fx   0  cx |
        |  0  fy  cy |
        |  0   0   1 |

Pinhole projection of a camera-frame point (X, Y, Z) with Z > 0:

    u = fx * X / Z + cx
    v = fy * Y / Z + cy

Inverse projection at a known depth d:

    X = (u - cx) * d / fx
    Y = (v - cy) * d / fy
    Z = d

Display Resolution:
===================
Calibration is done at one resolution (width, height). When the image is
drawn at another resolution (W', H'), every intrinsic scales linearly:

    sx = W' / width,  sy = H' / height
    fx' = fx * sx,  cx' = cx * sx
    fy' = fy * sy,  cy' = cy * sy

Scaling the intrinsics is exact for any principal point; scaling the
projected pixel coordinates afterwards is not, so only the former is
provided here.

Lens distortion coefficients (k1..k4) are parsed and kept on the record
but projection ignores them.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

import numpy as np

DEFAULT_CAMERA_MODEL = "PINHOLE"


@dataclass(frozen=True)
class CameraIntrinsics:
    """
    Camera intrinsic parameters at the calibration resolution.

    Attributes:
        width: Calibration image width in pixels.
        height: Calibration image height in pixels.
        fx: Focal length x (pixels).
        fy: Focal length y (pixels).
        cx: Principal point x (pixels).
        cy: Principal point y (pixels).
        distortion: Lens distortion (k1, k2, k3, k4); unused by projection.
        model: Camera model name from the calibration file.

    Example:
        >>> intrinsics = CameraIntrinsics(width=1920, height=1080, fx=1000.0,
        ...                               fy=1000.0, cx=960.0, cy=540.0)
        >>> half = intrinsics.scaled(960, 540)
        >>> half.fx, half.cx
        (500.0, 480.0)
    """

    width: int
    height: int
    fx: float
    fy: float
    cx: float
    cy: float
    distortion: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    model: str = DEFAULT_CAMERA_MODEL

    def __post_init__(self):
        """Validate inputs after initialization."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image size must be positive, got {self.width}x{self.height}"
            )
        if not (self.fx > 0 and self.fy > 0):
            raise ValueError(
                f"Focal lengths must be positive, got fx={self.fx}, fy={self.fy}"
            )
        values = (self.fx, self.fy, self.cx, self.cy)
        if not np.all(np.isfinite(values)):
            raise ValueError(f"Intrinsics must be finite, got {values}")

        distortion = tuple(float(k) for k in self.distortion)
        if len(distortion) != 4:
            raise ValueError(f"Expected 4 distortion coefficients, got {len(distortion)}")
        object.__setattr__(self, "distortion", distortion)

    @property
    def K(self) -> np.ndarray:
        """3x3 intrinsic matrix (alias for get_K_matrix())."""
        return self.get_K_matrix()

    @property
    def size(self) -> Tuple[int, int]:
        """Calibration resolution as (width, height)."""
        return self.width, self.height

    def get_K_matrix(self) -> np.ndarray:
        """
        Get the 3x3 camera intrinsic matrix.

        Returns:
            np.ndarray: 3x3 intrinsic matrix K with dtype float64.
        """
        return np.array([
            [self.fx, 0, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ], dtype=np.float64)

    def get_K_inverse(self) -> np.ndarray:
        """
        Get the inverse of the intrinsic matrix.

            K^(-1) = | 1/fx    0   -cx/fx |
                     |   0   1/fy  -cy/fy |
                     |   0     0      1   |
        """
        return np.array([
            [1/self.fx, 0, -self.cx/self.fx],
            [0, 1/self.fy, -self.cy/self.fy],
            [0, 0, 1]
        ], dtype=np.float64)

    def get_fov(self) -> Tuple[float, float]:
        """
        Calculate the camera field of view.

        Horizontal: 2 * arctan(width / (2 * fx))
        Vertical:   2 * arctan(height / (2 * fy))

        Returns:
            Tuple[float, float]: (horizontal_fov, vertical_fov) in radians.
        """
        horizontal_fov = 2 * np.arctan(self.width / (2 * self.fx))
        vertical_fov = 2 * np.arctan(self.height / (2 * self.fy))
        return float(horizontal_fov), float(vertical_fov)

    def scale_factors(self, width: int, height: int) -> Tuple[float, float]:
        """
        Ratio between a display resolution and the calibration resolution.

        Args:
            width: Display image width in pixels.
            height: Display image height in pixels.

        Returns:
            Tuple[float, float]: (scale_x, scale_y).
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Target size must be positive, got {width}x{height}")
        return width / self.width, height / self.height

    def scaled(self, width: int, height: int) -> "CameraIntrinsics":
        """
        Intrinsics for an image drawn at (width, height).

        fx, cx scale by width / self.width and fy, cy by height / self.height.
        Returns self unchanged when the size already matches.

        Args:
            width: Display image width in pixels.
            height: Display image height in pixels.

        Returns:
            CameraIntrinsics: Rescaled intrinsics with the new image size.
        """
        if (width, height) == (self.width, self.height):
            return self

        scale_x, scale_y = self.scale_factors(width, height)
        return replace(
            self,
            width=width,
            height=height,
            fx=self.fx * scale_x,
            fy=self.fy * scale_y,
            cx=self.cx * scale_x,
            cy=self.cy * scale_y,
        )

    def project_point(self, point_3d: np.ndarray) -> np.ndarray:
        """
        Project 3D point(s) in camera frame to 2D pixel coordinates.

            u = fx * (X/Z) + cx
            v = fy * (Y/Z) + cy

        Args:
            point_3d: 3D point (3,) or points (N, 3) in camera coordinates.

        Returns:
            np.ndarray: 2D pixel coordinates (2,) or (N, 2).

        Warning:
            No depth check is done here; points with Z <= 0 give meaningless
            pixels. Use fusionview.projection.Projector for culled projection.
        """
        point_3d = np.atleast_2d(np.asarray(point_3d, dtype=np.float64))

        u = self.fx * (point_3d[:, 0] / point_3d[:, 2]) + self.cx
        v = self.fy * (point_3d[:, 1] / point_3d[:, 2]) + self.cy

        return np.stack([u, v], axis=1).squeeze()

    def unproject_point(
        self,
        point_2d: np.ndarray,
        depth: Union[float, np.ndarray],
    ) -> np.ndarray:
        """
        Back-project 2D pixel(s) to 3D camera coordinates using depth.

        Args:
            point_2d: 2D pixel coordinate (2,) or coordinates (N, 2).
            depth: Depth value(s) (camera Z).

        Returns:
            np.ndarray: 3D point(s) (3,) or (N, 3) in camera coordinates.
        """
        point_2d = np.atleast_2d(np.asarray(point_2d, dtype=np.float64))
        depth = np.atleast_1d(np.asarray(depth, dtype=np.float64))

        x = (point_2d[:, 0] - self.cx) * depth / self.fx
        y = (point_2d[:, 1] - self.cy) * depth / self.fy
        z = np.broadcast_to(depth, x.shape)

        return np.stack([x, y, z], axis=1).squeeze()

    def is_in_image(
        self,
        points_2d: np.ndarray,
        margin: int = 0,
    ) -> np.ndarray:
        """
        Check if 2D points fall inside [0, width) x [0, height).

        Args:
            points_2d: 2D points (N, 2) in pixel coordinates.
            margin: Additional margin from image border (pixels).

        Returns:
            np.ndarray: Boolean mask (N,). NaN coordinates are outside.
        """
        points_2d = np.atleast_2d(points_2d)

        valid = (
            (points_2d[:, 0] >= margin) &
            (points_2d[:, 0] < self.width - margin) &
            (points_2d[:, 1] >= margin) &
            (points_2d[:, 1] < self.height - margin)
        )

        return valid

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CameraIntrinsics(fx={self.fx:.2f}, fy={self.fy:.2f}, "
            f"cx={self.cx:.2f}, cy={self.cy:.2f}, "
            f"width={self.width}, height={self.height}, model={self.model})"
        )


def intrinsics_for_target(
    intrinsics: CameraIntrinsics,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> CameraIntrinsics:
    """Scale intrinsics to (width, height); missing values keep the calibration size."""
    width = intrinsics.width if width is None else width
    height = intrinsics.height if height is None else height
    return intrinsics.scaled(width, height)
