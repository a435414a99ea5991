"""
Whole-scene projection passes.

Point cloud pass:
=================
    1. Transform every point into the camera frame.
    2. The depth range [d_min, d_max] is taken over all points with Z > 0,
       including those that fall outside the image.
    3. Each in-image point gets t = (d - d_min) / (d_max - d_min) (0 when the
       range is empty) and the HSV color (240 * t, 1, 1):
       nearest -> red (hue 0), farthest -> blue (hue 240).
    4. Points are yielded far-to-near so that drawing in order leaves near
       points on top.

Box pass:
=========
    - all 8 corners are projected;
    - a box is kept only if at least MIN_VISIBLE_CORNERS corners project;
    - an edge is kept only if both of its corners project;
    - the label anchor is the projected corner with the smallest y.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..annotation.box import BOX_EDGES, Color, ObjectType, OrientedBox
from ..calibration.camera import CalibrationSet, CameraCalibration
from ..errors import MissingCalibrationError
from ..utils.logger import LoggerMixin
from .projector import ProjectedPoint, Projector

logger = logging.getLogger(__name__)

MIN_VISIBLE_CORNERS = 2

NEAR_HUE = 0.0    # red
FAR_HUE = 240.0   # blue


@dataclass(frozen=True)
class BoxOverlay:
    """
    Projected wireframe of one box.

    Attributes:
        object_id: Annotation id.
        object_type: Object class.
        edges: Edge segments whose two corners both project.
        label_anchor: Projected corner with the smallest y.
        color: RGB box color.
        label: Display text, e.g. ``"Car 12"``.
    """

    object_id: str
    object_type: ObjectType
    edges: Tuple[Tuple[ProjectedPoint, ProjectedPoint], ...]
    label_anchor: ProjectedPoint
    color: Color
    label: str = ""


@dataclass(frozen=True)
class CameraOverlay:
    """Everything projected into one camera image."""

    camera_id: str
    width: int
    height: int
    points: Tuple[ProjectedPoint, ...] = field(default_factory=tuple)
    boxes: Tuple[BoxOverlay, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.points and not self.boxes


def depth_to_color(
    depth: np.ndarray,
    min_depth: float,
    max_depth: float,
) -> np.ndarray:
    """
    Convert depth values to RGB colors along the red -> blue hue ramp.

    Args:
        depth: (N,) array of depth values.
        min_depth: Depth mapped to hue 0 (red).
        max_depth: Depth mapped to hue 240 (blue).

    Returns:
        colors: (N, 3) uint8 RGB colors.
    """
    depth = np.asarray(depth, dtype=np.float64).reshape(-1)
    if len(depth) == 0:
        return np.empty((0, 3), dtype=np.uint8)

    span = max_depth - min_depth
    if span > 0:
        depth_norm = np.clip((depth - min_depth) / span, 0.0, 1.0)
    else:
        depth_norm = np.zeros_like(depth)

    hsv = np.ones((len(depth), 1, 3), dtype=np.float32)
    hsv[:, 0, 0] = NEAR_HUE + (FAR_HUE - NEAR_HUE) * depth_norm

    # Float HSV: H in [0, 360], S and V in [0, 1]
    rgb = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB).reshape(-1, 3)

    return np.clip(np.round(rgb * 255.0), 0, 255).astype(np.uint8)


def project_cloud(
    points: np.ndarray,
    calibration: Optional[CameraCalibration],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Iterator[ProjectedPoint]:
    """
    Project a point cloud into one camera, depth-colored and far-to-near.

    The work happens lazily on iteration and is redone on every call.

    Args:
        points: (N, 3) or (N, 4) sensor-frame points.
        calibration: Camera calibration; None yields nothing.
        width: Target image width (defaults to the calibration width).
        height: Target image height (defaults to the calibration height).

    Yields:
        ProjectedPoint with its RGB color, farthest first.
    """
    if calibration is None:
        return

    result = Projector(calibration, width, height).project_points(points)

    in_front = result.in_front
    if not np.any(in_front):
        logger.warning(
            f"No points in front of camera '{calibration.camera_id}' "
            f"({len(result.depths)} points)"
        )
        return

    front_depths = result.depths[in_front]
    min_depth, max_depth = float(front_depths.min()), float(front_depths.max())

    visible = np.flatnonzero(result.mask)
    if len(visible) == 0:
        logger.warning(f"No points inside image of camera '{calibration.camera_id}'")
        return

    depths = result.depths[visible]
    colors = depth_to_color(depths, min_depth, max_depth)

    # Far to near
    order = np.argsort(-depths, kind="stable")

    logger.debug(
        f"Camera '{calibration.camera_id}': {len(visible)}/{len(result.depths)} points "
        f"visible, depth range [{min_depth:.2f}, {max_depth:.2f}]"
    )

    for idx in order:
        x, y = result.pixels[visible[idx]]
        yield ProjectedPoint(
            x=float(x),
            y=float(y),
            depth=float(depths[idx]),
            color=tuple(int(c) for c in colors[idx]),
        )


def project_box(box: OrientedBox, projector: Projector) -> Optional[BoxOverlay]:
    """
    Project one box through a bound projector.

    Returns:
        BoxOverlay, or None when fewer than MIN_VISIBLE_CORNERS corners project.
    """
    result = projector.project_points(box.corners())

    if int(result.mask.sum()) < MIN_VISIBLE_CORNERS:
        return None

    corners: List[Optional[ProjectedPoint]] = [
        ProjectedPoint(x=float(px[0]), y=float(px[1]), depth=float(d), color=box.color)
        if visible else None
        for px, d, visible in zip(result.pixels, result.depths, result.mask)
    ]

    edges = tuple(
        (corners[i], corners[j])
        for i, j in BOX_EDGES
        if corners[i] is not None and corners[j] is not None
    )

    # Topmost corner; first in corner order on ties
    label_anchor = min((c for c in corners if c is not None), key=lambda c: c.y)

    return BoxOverlay(
        object_id=box.object_id,
        object_type=box.object_type,
        edges=edges,
        label_anchor=label_anchor,
        color=box.color,
        label=box.label,
    )


def project_boxes(
    boxes: Iterable[OrientedBox],
    calibration: Optional[CameraCalibration],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> List[BoxOverlay]:
    """
    Project boxes into one camera as wireframe overlays.

    Args:
        boxes: Oriented boxes in the sensor frame.
        calibration: Camera calibration; None gives an empty list.
        width: Target image width (defaults to the calibration width).
        height: Target image height (defaults to the calibration height).

    Returns:
        List of BoxOverlay in input order, omitting boxes that are not
        sufficiently visible.
    """
    if calibration is None:
        return []

    projector = Projector(calibration, width, height)
    overlays = []
    for box in boxes:
        overlay = project_box(box, projector)
        if overlay is not None:
            overlays.append(overlay)

    logger.debug(
        f"Camera '{calibration.camera_id}': {len(overlays)} boxes visible"
    )
    return overlays


class SceneProjectionPass(LoggerMixin):
    """
    Project one frame (cloud + boxes) into its cameras.

    Holds the frame's calibration, points and boxes explicitly; nothing is
    read from module state. Inputs are treated as read-only.

    Example:
        >>> scene = SceneProjectionPass(calibrations, points, boxes)
        >>> overlay = scene.project_camera("cam_1", 1920, 1080)
        >>> overlays = scene.project_all({"cam_1": (1920, 1080)})
    """

    def __init__(
        self,
        calibrations: CalibrationSet,
        points: Optional[np.ndarray] = None,
        boxes: Sequence[OrientedBox] = (),
    ):
        """
        Initialize the pass.

        Args:
            calibrations: Calibration set of the frame.
            points: (N, 3+) sensor-frame point cloud, or None.
            boxes: Oriented boxes of the frame.
        """
        self.calibrations = calibrations
        if points is None:
            points = np.empty((0, 3), dtype=np.float64)
        self.points = np.asarray(points)
        self.boxes = tuple(boxes)

    def project_camera(
        self,
        camera_id: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        include_points: bool = True,
        include_boxes: bool = True,
    ) -> CameraOverlay:
        """
        Project the frame into one camera.

        A camera without calibration gives an empty overlay; the problem is
        logged, not raised.

        Args:
            camera_id: Camera id.
            width: Display width (defaults to the calibration width).
            height: Display height (defaults to the calibration height).
            include_points: Run the point cloud pass.
            include_boxes: Run the box pass.

        Returns:
            CameraOverlay.
        """
        try:
            calibration = self.calibrations.require(camera_id)
        except MissingCalibrationError as exc:
            self.logger.warning(str(exc))
            return CameraOverlay(camera_id=camera_id, width=width or 0, height=height or 0)

        projector = Projector(calibration, width, height)
        width, height = projector.width, projector.height

        points: Tuple[ProjectedPoint, ...] = ()
        if include_points and len(self.points):
            points = tuple(project_cloud(self.points, calibration, width, height))

        boxes: Tuple[BoxOverlay, ...] = ()
        if include_boxes and self.boxes:
            boxes = tuple(project_boxes(self.boxes, calibration, width, height))

        self.logger.debug(
            f"Projected into '{camera_id}' at {width}x{height}: "
            f"{len(points)} points, {len(boxes)} boxes"
        )
        return CameraOverlay(
            camera_id=camera_id,
            width=width,
            height=height,
            points=points,
            boxes=boxes,
        )

    def project_all(
        self,
        image_sizes: Optional[Mapping[str, Tuple[int, int]]] = None,
        **kwargs,
    ) -> Dict[str, CameraOverlay]:
        """
        Project the frame into several cameras.

        Args:
            image_sizes: camera id -> (width, height). Defaults to every
                calibrated camera at its calibration size.
            **kwargs: Forwarded to project_camera().

        Returns:
            Dict of camera id -> CameraOverlay.
        """
        if image_sizes is None:
            image_sizes = {
                camera_id: calib.intrinsics.size
                for camera_id, calib in self.calibrations.items()
            }

        return {
            camera_id: self.project_camera(camera_id, width, height, **kwargs)
            for camera_id, (width, height) in image_sizes.items()
        }

    def __repr__(self) -> str:
        return (
            f"SceneProjectionPass(cameras={self.calibrations.camera_ids}, "
            f"points={len(self.points)}, boxes={len(self.boxes)})"
        )
