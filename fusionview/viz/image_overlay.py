"""
Image overlay rendering.

Draws CameraOverlay results (projected points, box wireframes, labels) onto
camera images. Images are RGB uint8 arrays throughout; conversion to and from
OpenCV's BGR happens only in load_image() and save_image().
"""

from pathlib import Path
from typing import Iterable, Tuple, Union

import cv2
import numpy as np

from ..projection.projector import ProjectedPoint
from ..projection.scene_pass import BoxOverlay, CameraOverlay

# Fallback point color when a pass did not assign one
DEFAULT_POINT_COLOR: Tuple[int, int, int] = (0, 255, 127)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from disk.

    Args:
        path: Image file path.

    Returns:
        image: (H, W, 3) uint8 numpy array in RGB format.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    # OpenCV loads as BGR, convert to RGB
    image = cv2.imread(str(path))
    if image is None:
        raise IOError(f"Failed to load image: {path}")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def draw_projected_points(
    image: np.ndarray,
    points: Iterable[ProjectedPoint],
    point_size: int = 2,
    alpha: float = 1.0,
) -> np.ndarray:
    """
    Draw projected LiDAR points as filled circles.

    Points are drawn in the order given, so a far-to-near sequence leaves
    near points on top.

    Args:
        image: (H, W, 3) RGB image.
        points: Projected points (with colors) in image coordinates.
        point_size: Circle radius in pixels.
        alpha: Opacity of the point layer (0-1).

    Returns:
        New image with points drawn.
    """
    result = image.copy()
    points_layer = result if alpha >= 1.0 else image.copy()

    drawn = 0
    for point in points:
        color = point.color if point.color is not None else DEFAULT_POINT_COLOR
        cv2.circle(points_layer, point.pixel, point_size, tuple(map(int, color)), -1)
        drawn += 1

    # Blend only where points were drawn
    if alpha < 1.0 and drawn:
        mask = np.any(points_layer != image, axis=2)
        result[mask] = cv2.addWeighted(
            image[mask], 1 - alpha,
            points_layer[mask], alpha,
            0,
        )

    return result


def draw_text(
    image: np.ndarray,
    text: str,
    position: Tuple[int, int],
    color: Tuple[int, int, int] = (255, 255, 255),
    font_scale: float = 0.5,
    thickness: int = 1,
    background: bool = True,
    padding: int = 3,
) -> np.ndarray:
    """
    Draw text on image with optional background.

    Args:
        image: Image to draw on (modified in place).
        text: Text string to draw.
        position: (x, y) position (bottom-left of text).
        color: Text color (RGB).
        font_scale: Font scale factor.
        thickness: Text thickness.
        background: Whether to draw a darker background box.
        padding: Background padding in pixels.

    Returns:
        Image with text drawn.
    """
    font = cv2.FONT_HERSHEY_SIMPLEX
    x, y = position

    (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, thickness)

    # Keep the label inside the image
    h, w = image.shape[:2]
    y = max(text_h + padding, min(y, h - padding))
    x = max(padding, min(x, w - text_w - padding))

    if background:
        bg_color = tuple(int(c * 0.3) for c in color)
        cv2.rectangle(
            image,
            (x - padding, y - text_h - padding),
            (x + text_w + padding, y + baseline + padding),
            bg_color,
            -1,
        )

    cv2.putText(image, text, (x, y), font, font_scale, color, thickness, cv2.LINE_AA)

    return image


def draw_box_overlays(
    image: np.ndarray,
    boxes: Iterable[BoxOverlay],
    thickness: int = 2,
    show_labels: bool = True,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Draw box wireframes and their labels.

    Args:
        image: (H, W, 3) RGB image.
        boxes: Box overlays from the box pass.
        thickness: Line thickness.
        show_labels: Draw "<type> <id>" above each label anchor.
        font_scale: Label font scale.

    Returns:
        New image with boxes drawn.
    """
    result = image.copy()

    for box in boxes:
        color = tuple(map(int, box.color))
        for start, end in box.edges:
            cv2.line(result, start.pixel, end.pixel, color, thickness, cv2.LINE_AA)

        if show_labels and box.label:
            anchor_x, anchor_y = box.label_anchor.pixel
            draw_text(
                result,
                box.label,
                (anchor_x, anchor_y - 5),
                color=color,
                font_scale=font_scale,
            )

    return result


def render_camera_overlay(
    image: np.ndarray,
    overlay: CameraOverlay,
    draw_points: bool = True,
    draw_boxes: bool = True,
    point_size: int = 2,
    point_alpha: float = 1.0,
    line_thickness: int = 2,
    show_labels: bool = True,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Render one camera's overlay onto its image.

    The image is resized to the overlay size first when they differ, since
    overlay coordinates are in the overlay's resolution.

    Returns:
        New (H, W, 3) RGB image.
    """
    h, w = image.shape[:2]
    if overlay.width and overlay.height and (w, h) != (overlay.width, overlay.height):
        image = cv2.resize(image, (overlay.width, overlay.height), interpolation=cv2.INTER_LINEAR)

    result = image.copy()
    if draw_points and overlay.points:
        result = draw_projected_points(result, overlay.points, point_size, point_alpha)
    if draw_boxes and overlay.boxes:
        result = draw_box_overlays(
            result,
            overlay.boxes,
            thickness=line_thickness,
            show_labels=show_labels,
            font_scale=font_scale,
        )
    return result


def save_image(
    image: np.ndarray,
    path: Union[str, Path],
    quality: int = 95,
    create_dir: bool = True,
) -> bool:
    """
    Save image to file.

    Args:
        image: (H, W, 3) RGB image.
        path: Output file path.
        quality: JPEG quality (1-100).
        create_dir: Create parent directories if needed.

    Returns:
        True if successful.
    """
    path = Path(path)

    if create_dir:
        path.parent.mkdir(parents=True, exist_ok=True)

    image_bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    if path.suffix.lower() in [".jpg", ".jpeg"]:
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    elif path.suffix.lower() == ".png":
        params = [cv2.IMWRITE_PNG_COMPRESSION, 9 - (quality // 11)]
    else:
        params = []

    return cv2.imwrite(str(path), image_bgr, params)


class ImageOverlay:
    """
    Fluent interface for building image overlays.

    Usage:
        result = (ImageOverlay(image)
            .draw_points(overlay.points)
            .draw_boxes(overlay.boxes)
            .draw_text("cam_1", (10, 30))
            .get())
    """

    def __init__(self, image: np.ndarray):
        self.image = image.copy()

    def draw_points(
        self,
        points: Iterable[ProjectedPoint],
        **kwargs,
    ) -> "ImageOverlay":
        """Draw projected points."""
        self.image = draw_projected_points(self.image, points, **kwargs)
        return self

    def draw_boxes(
        self,
        boxes: Iterable[BoxOverlay],
        **kwargs,
    ) -> "ImageOverlay":
        """Draw box wireframes."""
        self.image = draw_box_overlays(self.image, boxes, **kwargs)
        return self

    def draw_text(
        self,
        text: str,
        position: Tuple[int, int],
        **kwargs,
    ) -> "ImageOverlay":
        """Draw text."""
        self.image = draw_text(self.image, text, position, **kwargs)
        return self

    def get(self) -> np.ndarray:
        """Get the final image."""
        return self.image

    def save(self, path: Union[str, Path], **kwargs) -> bool:
        """Save image to file."""
        return save_image(self.image, path, **kwargs)
