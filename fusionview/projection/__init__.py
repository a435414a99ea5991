"""
Projection of sensor-frame geometry into camera images.

Classes:
    Projector: One camera at one target size.
    SceneProjectionPass: A whole frame into one or all cameras.

Example Usage:
    >>> from fusionview.projection import SceneProjectionPass
    >>> scene = SceneProjectionPass(calibrations, points, boxes)
    >>> overlay = scene.project_camera("cam_1", width=1920, height=1080)
    >>> len(overlay.points), len(overlay.boxes)
"""

from .projector import (
    ProjectedPoint,
    ProjectionResult,
    Projector,
    backproject,
    project,
    project_points,
)
from .scene_pass import (
    BoxOverlay,
    CameraOverlay,
    SceneProjectionPass,
    depth_to_color,
    project_box,
    project_boxes,
    project_cloud,
)

__all__ = [
    "ProjectedPoint",
    "ProjectionResult",
    "Projector",
    "project",
    "project_points",
    "backproject",
    "BoxOverlay",
    "CameraOverlay",
    "SceneProjectionPass",
    "depth_to_color",
    "project_cloud",
    "project_box",
    "project_boxes",
]
