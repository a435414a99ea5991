"""
Camera Extrinsic Calibration Module.

Mathematical Background:
========================

A camera calibration block stores the camera pose in the LiDAR (sensor)
frame: a position t and a unit quaternion q = (x, y, z, w). Composing them
gives the 4x4 rigid transform

    M = T(t) · R(q) = | R  t |
                      | 0  1 |

M maps camera-frame coordinates to sensor-frame coordinates (it places the
camera in the sensor frame). Projecting a LiDAR point needs the opposite
direction, so the projection path always uses

    M^(-1) = | R^T  -R^T t |
             |  0      1   |

which maps a sensor-frame point into the camera frame. M^(-1) is built once
when the extrinsics are created; it is never recomputed per point.

Frames are right-handed. In the camera frame, +Z looks forward out of the
lens, +X points to image right and +Y to image down.
"""

from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np
from scipy.spatial.transform import Rotation

ArrayLike = Union[Sequence[float], np.ndarray]

QUATERNION_NORM_EPS = 1e-12


def _frozen(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def rigid_transform(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    """Build the 4x4 homogeneous matrix | R t ; 0 1 |."""
    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = rotation
    T[:3, 3] = translation
    return T


def invert_rigid_transform(T: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 rigid transform without a general matrix inverse.

    Given T = [R, t], returns [R^T, -R^T @ t].
    """
    R_inv = T[:3, :3].T
    t_inv = -R_inv @ T[:3, 3]
    return rigid_transform(R_inv, t_inv)


def apply_transform(T: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Apply a 4x4 rigid transform to points.

    Args:
        T: 4x4 homogeneous transform.
        points: (N, 3) or (3,) points. Extra columns (e.g. intensity) are
                dropped.

    Returns:
        np.ndarray: Transformed points with the input's leading shape.
    """
    points = np.asarray(points, dtype=np.float64)
    single = points.ndim == 1
    xyz = np.atleast_2d(points)[:, :3]

    transformed = xyz @ T[:3, :3].T + T[:3, 3]

    return transformed[0] if single else transformed


@dataclass(frozen=True, eq=False)
class CameraExtrinsics:
    """
    Camera pose in the sensor frame, with its cached inverse.

    Attributes:
        position: Camera position t (3,) in the sensor frame.
        orientation: Camera orientation quaternion (x, y, z, w); normalized
                     on construction.
        matrix: M = T(position) · R(orientation), camera -> sensor.
        sensor_to_camera: M^(-1), sensor -> camera. Used for projection.

    Example:
        >>> ext = CameraExtrinsics(position=[0, 0, -10], orientation=[0, 0, 0, 1])
        >>> ext.to_camera([0.0, 0.0, 0.0])
        array([ 0.,  0., 10.])
    """

    position: np.ndarray
    orientation: np.ndarray
    matrix: np.ndarray = field(init=False, repr=False)
    sensor_to_camera: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        """Validate the pose and cache both transform directions."""
        position = np.asarray(self.position, dtype=np.float64).flatten()
        orientation = np.asarray(self.orientation, dtype=np.float64).flatten()

        if position.shape != (3,):
            raise ValueError(f"position must be (3,), got {position.shape}")
        if orientation.shape != (4,):
            raise ValueError(f"orientation must be (4,) as (x, y, z, w), got {orientation.shape}")
        if not (np.all(np.isfinite(position)) and np.all(np.isfinite(orientation))):
            raise ValueError("position and orientation must be finite")

        norm = np.linalg.norm(orientation)
        if norm < QUATERNION_NORM_EPS:
            raise ValueError("orientation quaternion has zero norm")
        orientation = orientation / norm

        rotation = Rotation.from_quat(orientation).as_matrix()
        matrix = rigid_transform(rotation, position)

        object.__setattr__(self, "position", _frozen(position))
        object.__setattr__(self, "orientation", _frozen(orientation))
        object.__setattr__(self, "matrix", _frozen(matrix))
        object.__setattr__(self, "sensor_to_camera", _frozen(invert_rigid_transform(matrix)))

    @property
    def camera_to_sensor(self) -> np.ndarray:
        """Alias of ``matrix``: camera-frame -> sensor-frame transform."""
        return self.matrix

    @property
    def rotation(self) -> np.ndarray:
        """3x3 rotation of the camera pose (camera -> sensor)."""
        return self.matrix[:3, :3]

    def to_camera(self, points: ArrayLike) -> np.ndarray:
        """
        Transform sensor-frame (LiDAR) points into the camera frame.

        Args:
            points: (N, 3+) or (3,) points in the sensor frame.

        Returns:
            np.ndarray: Points in the camera frame.
        """
        return apply_transform(self.sensor_to_camera, points)

    def to_sensor(self, points: ArrayLike) -> np.ndarray:
        """
        Transform camera-frame points back into the sensor frame.

        This is the inverse of to_camera().
        """
        return apply_transform(self.matrix, points)

    @classmethod
    def identity(cls) -> "CameraExtrinsics":
        """Camera at the sensor origin looking down the sensor +Z axis."""
        return cls(position=np.zeros(3), orientation=np.array([0.0, 0.0, 0.0, 1.0]))

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CameraExtrinsics(position={np.round(self.position, 4).tolist()}, "
            f"orientation={np.round(self.orientation, 4).tolist()})"
        )
