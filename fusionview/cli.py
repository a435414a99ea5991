"""
Render LiDAR points and 3D boxes onto the camera images of a frame.

Usage:
    # Render one frame with default settings
    fusionview-render frames/000123.json

    # Render every frame of a directory, boxes only
    fusionview-render frames/ --all --no-points

    # Render the 5th frame of a directory at half resolution
    fusionview-render frames/ --index 4 --scale 0.5

    # Only some cameras, custom config
    fusionview-render frames/000123.json --cameras cam_1 cam_2 --config my_viewer.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from .data.frame_loader import Frame, FrameLoader, FrameSequence
from .utils.config_loader import ConfigLoader, get_nested, load_config
from .utils.logger import ROOT_LOGGER_NAME, setup_logger
from .viz.frame_view import FrameViewState
from .viz.image_overlay import load_image, render_camera_overlay, save_image

logger = logging.getLogger(__name__)


def render_frame(
    frame: Frame,
    config: Dict[str, Any],
    cameras: Optional[Sequence[str]] = None,
    scale: float = 1.0,
) -> Dict[str, FrameViewState]:
    """
    Render every camera image of a frame.

    Args:
        frame: Loaded frame.
        config: Viewer configuration (uses the 'render' section).
        cameras: Restrict to these camera ids.
        scale: Display scale relative to the image file resolution.

    Returns:
        Dict of camera id -> FrameViewState with original and projected images.
    """
    render = config["render"]
    scene = frame.projection_pass()
    views: Dict[str, FrameViewState] = {}

    for camera_id, image_path in frame.image_paths.items():
        if cameras and camera_id not in cameras:
            continue

        try:
            image = load_image(image_path)
        except (FileNotFoundError, IOError) as exc:
            logger.warning(f"Skipping {camera_id}: {exc}")
            continue

        height, width = image.shape[:2]
        if scale != 1.0:
            width, height = max(1, round(width * scale)), max(1, round(height * scale))

        overlay = scene.project_camera(
            camera_id,
            width,
            height,
            include_points=render["draw_points"],
            include_boxes=render["draw_boxes"],
        )

        view = FrameViewState()
        view.set_original(image)
        view.set_projected(
            render_camera_overlay(
                image,
                overlay,
                draw_points=render["draw_points"],
                draw_boxes=render["draw_boxes"],
                point_size=render["point_size"],
                point_alpha=render["point_alpha"],
                line_thickness=render["line_thickness"],
                show_labels=render["show_labels"],
                font_scale=render["font_scale"],
            )
        )
        view.toggle()
        views[camera_id] = view

        logger.info(
            f"{frame.name}/{camera_id}: {len(overlay.points)} points, "
            f"{len(overlay.boxes)} boxes"
        )

    return views


def save_views(
    views: Dict[str, FrameViewState],
    output_dir: Path,
    save_original: bool = False,
) -> List[Path]:
    """Write projected (and optionally original) images as PNG files."""
    written = []
    for camera_id, view in views.items():
        path = output_dir / f"{camera_id}.png"
        if save_image(view.current(), path):
            written.append(path)
        else:
            logger.error(f"Failed to write {path}")

        if save_original and view.original is not None:
            path = output_dir / f"{camera_id}_original.png"
            if save_image(view.original, path):
                written.append(path)

    return written


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Project LiDAR points and 3D boxes onto camera images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "frame",
        type=str,
        help="Frame JSON file, or a directory of frame JSON files",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (default: built-in settings)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="outputs",
        help="Output directory (default: outputs)",
    )
    parser.add_argument(
        "--index",
        type=int,
        default=0,
        help="Frame index when FRAME is a directory (default: 0)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Render every frame when FRAME is a directory",
    )
    parser.add_argument(
        "--cameras",
        nargs="+",
        default=None,
        help="Camera ids to render (default: all with images)",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Display scale relative to the image size (default: 1.0)",
    )
    parser.add_argument(
        "--no-points",
        action="store_true",
        help="Do not draw LiDAR points",
    )
    parser.add_argument(
        "--no-boxes",
        action="store_true",
        help="Do not draw 3D boxes",
    )
    parser.add_argument(
        "--save-original",
        action="store_true",
        help="Also write the unmodified camera images",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point of fusionview-render."""
    args = parse_args(argv)

    overrides: Dict[str, Any] = {"render": {}}
    if args.no_points:
        overrides["render"]["draw_points"] = False
    if args.no_boxes:
        overrides["render"]["draw_boxes"] = False
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}

    config = load_config(args.config, overrides)

    setup_logger(
        ROOT_LOGGER_NAME,
        level=get_nested(config, "logging.level", "INFO"),
        log_file=get_nested(config, "logging.file"),
    )

    if args.scale <= 0:
        logger.error(f"--scale must be positive, got {args.scale}")
        return 2

    loader = FrameLoader(
        image_keys=get_nested(config, "frame.image_keys"),
        calibration_file=get_nested(config, "frame.calibration_file", "cameras.cfg"),
        use_undistorted=get_nested(config, "frame.use_undistorted", False),
    )

    frame_path = Path(args.frame)
    if frame_path.is_dir():
        sequence = FrameSequence(frame_path, loader=loader)
        if args.all:
            frame_paths = list(sequence.paths)
        elif sequence.go_to(args.index):
            frame_paths = [sequence.current_path]
        else:
            logger.error(f"Frame index {args.index} out of range (0-{len(sequence) - 1})")
            return 2
    else:
        frame_paths = [frame_path]

    output_dir = Path(args.output_dir)
    ConfigLoader().save(config, output_dir / "config_used.yaml")

    total = 0
    for path in tqdm(frame_paths, desc="Rendering", unit="frame", disable=len(frame_paths) < 2):
        frame = loader.load(path)
        for error in frame.calibrations.errors:
            logger.warning(f"{frame.name}: calibration {error}")

        views = render_frame(frame, config, cameras=args.cameras, scale=args.scale)
        written = save_views(views, output_dir / frame.name, save_original=args.save_original)
        total += len(written)

    print(f"Wrote {total} image(s) to {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
