"""
Frame descriptor loader.

Frame Descriptor Format:
========================
One JSON file per capture frame:

    {
      "frame": {
        "parent_dir": "/data/run_001",            # optional
        "config": "config",                       # directory holding cameras.cfg
        "lidar_path": "lidar/000123.pcd",
        "undistort_lidar_path": "lidar_undistort/000123.pcd",   # optional
        "label": "label/000123.json",             # optional
        "cam_1": "images/cam_1/000123.jpg",
        "camera_2": "images/camera_2/000123.jpg",
        ...
      }
    }

When ``parent_dir`` is set, every path is joined onto it with exactly one
``/`` between the parts. Without it, relative paths are resolved against the
directory of the descriptor file.

Point Cloud Files:
==================
- ``.bin``: KITTI-style float32 records [x, y, z, intensity] (16 bytes each)
- ``.npy``: NumPy array of shape (N, 3+)
- ``.pcd``: Point Cloud Data, read with Open3D (optional dependency)

Example Usage:
    >>> loader = FrameLoader()
    >>> frame = loader.load("frames/000123.json")
    >>> scene = frame.projection_pass()
    >>> overlays = scene.project_all()
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..annotation.box import OrientedBox
from ..annotation.labels import load_label_file
from ..calibration.camera import CalibrationSet
from ..calibration.parser import ParseError, load_calibration_file
from ..projection.scene_pass import SceneProjectionPass
from ..utils.config_loader import DEFAULT_CONFIG
from ..utils.logger import LoggerMixin

# Open3D is optional; only .pcd files need it
try:
    import open3d as o3d
    HAS_OPEN3D = True
except ImportError:
    HAS_OPEN3D = False


CALIBRATION_FILENAME = "cameras.cfg"
DEFAULT_IMAGE_KEYS = tuple(DEFAULT_CONFIG["frame"]["image_keys"])
POINT_CLOUD_EXTENSIONS = (".bin", ".npy", ".pcd")


def join_paths(base_path: str, relative_path: str) -> str:
    """
    Join two path strings with exactly one ``/`` between them.

    Example:
        >>> join_paths("/data/run/", "/lidar/0.pcd")
        '/data/run/lidar/0.pcd'
    """
    if base_path.endswith("/") and relative_path.startswith("/"):
        return base_path + relative_path[1:]
    if not base_path.endswith("/") and not relative_path.startswith("/"):
        return base_path + "/" + relative_path
    return base_path + relative_path


def load_point_cloud(path: Union[str, Path]) -> np.ndarray:
    """
    Load a LiDAR point cloud.

    Args:
        path: .bin, .npy or .pcd file.

    Returns:
        points: (N, 4) float32 array [x, y, z, intensity] for .bin files,
                (N, 3+) for .npy, (N, 3) for .pcd.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ImportError: For .pcd files when Open3D is not installed.
        ValueError: For unsupported extensions or malformed arrays.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point cloud not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".bin":
        points = np.fromfile(str(path), dtype=np.float32)
        if points.size % 4 != 0:
            raise ValueError(f"{path} size is not a multiple of 4 float32 values")
        points = points.reshape(-1, 4)
    elif suffix == ".npy":
        points = np.load(str(path))
    elif suffix == ".pcd":
        if not HAS_OPEN3D:
            raise ImportError(
                "Open3D is required to read .pcd files. "
                "Install with: pip install fusionview[pcd]"
            )
        cloud = o3d.io.read_point_cloud(str(path))
        points = np.asarray(cloud.points, dtype=np.float64)
    else:
        raise ValueError(
            f"Unsupported point cloud format '{suffix}' "
            f"(expected one of {', '.join(POINT_CLOUD_EXTENSIONS)})"
        )

    if points.ndim != 2 or (len(points) and points.shape[1] < 3):
        raise ValueError(f"Expected points of shape (N, 3+), got {points.shape}")

    return points


@dataclass
class FrameDescriptor:
    """
    Parsed frame JSON with all paths resolved.

    Attributes:
        name: Descriptor file stem.
        config_dir: Directory containing cameras.cfg.
        lidar_path: Point cloud path.
        undistort_lidar_path: Motion-compensated point cloud path.
        label_path: Label JSON path.
        entries: Remaining string entries of the frame (camera image paths
                 among them), already resolved.
    """

    name: str
    config_dir: Optional[str] = None
    lidar_path: Optional[str] = None
    undistort_lidar_path: Optional[str] = None
    label_path: Optional[str] = None
    entries: Dict[str, str] = field(default_factory=dict)

    def calibration_path(self, filename: str = CALIBRATION_FILENAME) -> Optional[str]:
        """Path of the calibration file inside config_dir."""
        if self.config_dir is None:
            return None
        return join_paths(self.config_dir, filename)

    def image_paths(self, camera_keys: Sequence[str]) -> Dict[str, str]:
        """Image path per camera key, for the keys present in the frame."""
        return {key: self.entries[key] for key in camera_keys if key in self.entries}

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        name: str = "",
        base_dir: Optional[Union[str, Path]] = None,
    ) -> "FrameDescriptor":
        """
        Build a descriptor from decoded frame JSON.

        Args:
            data: Decoded JSON; either ``{"frame": {...}}`` or the inner object.
            name: Frame name.
            base_dir: Directory for relative paths when there is no parent_dir.

        Raises:
            ValueError: If the frame is not an object or a path entry is not a string.
        """
        frame = data.get("frame", data)
        if not isinstance(frame, Mapping):
            raise ValueError("Frame descriptor 'frame' must be an object")

        parent_dir = frame.get("parent_dir")
        if parent_dir is not None and not isinstance(parent_dir, str):
            raise ValueError(
                f"Frame entry 'parent_dir' must be a string, got {type(parent_dir).__name__}"
            )

        def resolve(key: str) -> Optional[str]:
            value = frame.get(key)
            if value is None or value == "":
                return None
            if not isinstance(value, str):
                raise ValueError(
                    f"Frame entry '{key}' must be a path string, got {type(value).__name__}"
                )
            if parent_dir:
                return join_paths(str(parent_dir), value)
            if base_dir is not None and not Path(value).is_absolute():
                return str(Path(base_dir) / value)
            return value

        entries = {
            key: resolve(key)
            for key, value in frame.items()
            if isinstance(value, str) and value
            and key not in ("parent_dir", "config", "lidar_path", "undistort_lidar_path", "label")
        }

        return cls(
            name=name,
            config_dir=resolve("config"),
            lidar_path=resolve("lidar_path"),
            undistort_lidar_path=resolve("undistort_lidar_path"),
            label_path=resolve("label"),
            entries=entries,
        )


def load_frame_descriptor(path: Union[str, Path]) -> FrameDescriptor:
    """
    Read a frame JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the JSON is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Frame descriptor not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid frame JSON in {path}: {exc}") from exc

    if not isinstance(data, Mapping):
        raise ValueError(f"Frame descriptor must be a JSON object: {path}")

    return FrameDescriptor.from_dict(data, name=path.stem, base_dir=path.parent)


@dataclass
class Frame:
    """Everything loaded for one capture frame."""

    descriptor: FrameDescriptor
    calibrations: CalibrationSet
    points: np.ndarray
    boxes: List[OrientedBox]
    image_paths: Dict[str, str]

    @property
    def name(self) -> str:
        return self.descriptor.name

    def projection_pass(self) -> SceneProjectionPass:
        return SceneProjectionPass(self.calibrations, self.points, self.boxes)


class FrameLoader(LoggerMixin):
    """
    Load frames described by frame JSON files.

    Usage:
        loader = FrameLoader(image_keys=["cam_1", "cam_2"])
        frame = loader.load("frames/000123.json")
        # frame.calibrations: CalibrationSet
        # frame.points: (N, 3+) point cloud
        # frame.boxes: list of OrientedBox (empty without labels)
        # frame.image_paths: camera id -> image path
    """

    def __init__(
        self,
        image_keys: Optional[Sequence[str]] = None,
        calibration_file: str = CALIBRATION_FILENAME,
        use_undistorted: bool = False,
    ):
        """
        Initialize the loader.

        Args:
            image_keys: Frame keys holding camera images. Keys naming a
                        calibrated camera are always included as well.
            calibration_file: Calibration file name inside the config directory.
            use_undistorted: Prefer undistort_lidar_path when present.
        """
        self.image_keys = tuple(image_keys) if image_keys is not None else DEFAULT_IMAGE_KEYS
        self.calibration_file = calibration_file
        self.use_undistorted = use_undistorted

    def load(self, path: Union[str, Path]) -> Frame:
        """
        Load one frame.

        Missing calibration or label files are logged and give an empty
        calibration set or box list; a missing point cloud raises.

        Args:
            path: Frame JSON path.

        Returns:
            Frame.
        """
        descriptor = load_frame_descriptor(path)

        calibrations = self.load_calibrations(descriptor)
        boxes = self.load_boxes(descriptor)
        points = self.load_points(descriptor)

        camera_keys = list(self.image_keys)
        camera_keys += [cid for cid in calibrations.camera_ids if cid not in camera_keys]
        image_paths = descriptor.image_paths(camera_keys)

        self.logger.info(
            f"Loaded frame {descriptor.name}: {len(calibrations)} cameras, "
            f"{len(points)} points, {len(boxes)} boxes, {len(image_paths)} images"
        )

        return Frame(
            descriptor=descriptor,
            calibrations=calibrations,
            points=points,
            boxes=boxes,
            image_paths=image_paths,
        )

    def load_calibrations(self, descriptor: FrameDescriptor) -> CalibrationSet:
        calib_path = descriptor.calibration_path(self.calibration_file)
        if calib_path is None:
            error = ParseError(block_index=None, camera_id=None, message="frame has no 'config' entry")
            self.logger.warning(f"Frame {descriptor.name}: {error.message}")
            return CalibrationSet(errors=(error,))

        try:
            return load_calibration_file(calib_path)
        except FileNotFoundError as exc:
            self.logger.warning(f"Frame {descriptor.name}: {exc}")
            return CalibrationSet(
                errors=(ParseError(block_index=None, camera_id=None, message=str(exc)),)
            )

    def load_boxes(self, descriptor: FrameDescriptor) -> List[OrientedBox]:
        if descriptor.label_path is None:
            self.logger.debug(f"Frame {descriptor.name}: no label file")
            return []

        try:
            return load_label_file(descriptor.label_path)
        except (FileNotFoundError, ValueError) as exc:
            self.logger.warning(f"Frame {descriptor.name}: labels unavailable ({exc})")
            return []

    def load_points(self, descriptor: FrameDescriptor) -> np.ndarray:
        lidar_path = descriptor.lidar_path
        if self.use_undistorted and descriptor.undistort_lidar_path:
            lidar_path = descriptor.undistort_lidar_path

        if lidar_path is None:
            self.logger.warning(f"Frame {descriptor.name}: no point cloud path")
            return np.empty((0, 3), dtype=np.float32)

        return load_point_cloud(lidar_path)


class FrameSequence:
    """
    Ordered frame descriptors of a directory with bounded navigation.

    Usage:
        frames = FrameSequence("frames/")
        frame = frames.current()
        while frames.next():
            frame = frames.current()
    """

    def __init__(
        self,
        directory: Union[str, Path],
        loader: Optional[FrameLoader] = None,
    ):
        """
        Initialize the sequence.

        Args:
            directory: Directory of *.json frame descriptors.
            loader: Frame loader (default: FrameLoader()).
        """
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Frame directory not found: {self.directory}")

        self.paths = sorted(self.directory.glob("*.json"), key=lambda p: p.name)
        if len(self.paths) == 0:
            raise ValueError(f"No frame JSON files found in {self.directory}")

        self.loader = loader or FrameLoader()
        self.index = 0

    def __len__(self) -> int:
        return len(self.paths)

    def __getitem__(self, idx: int) -> Frame:
        return self.loader.load(self.paths[idx])

    def __iter__(self):
        for idx in range(len(self)):
            yield self[idx]

    @property
    def current_path(self) -> Path:
        return self.paths[self.index]

    def current(self) -> Frame:
        """Load the frame at the current index."""
        return self[self.index]

    def go_to(self, index: int) -> bool:
        """Move to index if it is in range; returns whether it moved."""
        if 0 <= index < len(self.paths):
            self.index = index
            return True
        return False

    def next(self) -> bool:
        return self.go_to(self.index + 1)

    def previous(self) -> bool:
        return self.go_to(self.index - 1)

    def position(self) -> str:
        """Display string, e.g. ``"000123.json (4/20)"``."""
        return f"{self.current_path.name} ({self.index + 1}/{len(self.paths)})"
