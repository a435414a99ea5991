"""Rendering of projection overlays onto camera images."""

from .frame_view import FrameViewState
from .image_overlay import (
    ImageOverlay,
    draw_box_overlays,
    draw_projected_points,
    draw_text,
    load_image,
    render_camera_overlay,
    save_image,
)

__all__ = [
    "FrameViewState",
    "ImageOverlay",
    "load_image",
    "draw_projected_points",
    "draw_box_overlays",
    "draw_text",
    "render_camera_overlay",
    "save_image",
]
