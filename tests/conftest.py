"""Shared fixtures: a 1000x1000 pinhole camera and its calibration text."""

import numpy as np
import pytest

CAMERA_CFG = """
# Front camera
config {
  camera_dev: "cam_1"
  img_width: 1000
  img_height: 1000
  f_x: 1000.0
  f_y: 1000.0
  o_x: 500.0
  o_y: 500.0
  position { x: 0.0 y: 0.0 z: 0.0 }
  orientation { qx: 0.0 qy: 0.0 qz: 0.0 qw: 1.0 }
}
config {
  camera_dev: "cam_2"
  img_width: 1920
  img_height: 1080
  f_x: 1200.0
  f_y: 1200.0
  o_x: 960.0
  o_y: 540.0
  k_1: -0.1
  k_2: 0.01
  model_type: PINHOLE
  position { x: 0.0 y: 0.0 z: -10.0 }
  orientation { qx: 0.0 qy: 0.0 qz: 0.0 qw: 1.0 }
  install_angle_error { x: 0.001 y: -0.002 z: 0.0 }
}
"""


@pytest.fixture
def camera_cfg_text():
    return CAMERA_CFG


@pytest.fixture
def intrinsics():
    """fx = fy = 1000, principal point at the center of a 1000x1000 image."""
    from fusionview.calibration import CameraIntrinsics

    return CameraIntrinsics(
        width=1000, height=1000,
        fx=1000.0, fy=1000.0,
        cx=500.0, cy=500.0,
    )


@pytest.fixture
def calibration(intrinsics):
    """Camera at the sensor origin looking down +Z."""
    from fusionview.calibration import CameraCalibration, CameraExtrinsics

    return CameraCalibration(
        camera_id="cam_1",
        intrinsics=intrinsics,
        extrinsics=CameraExtrinsics.identity(),
    )


@pytest.fixture
def calibrations(calibration):
    from fusionview.calibration import CalibrationSet

    return CalibrationSet({"cam_1": calibration})


@pytest.fixture
def rng():
    return np.random.default_rng(42)


LABELS = [
    {
        "obj_id": "1",
        "obj_type": "Car",
        "psr": {
            "position": {"x": 0.0, "y": 0.0, "z": 10.0},
            "scale": {"x": 2.0, "y": 2.0, "z": 2.0},
            "rotation": {"x": 0.0, "y": 0.0, "z": 0.0},
        },
    },
]


def write_frame(root, name="000001", image_size=(200, 200), labels=True):
    """
    Write a complete frame under root and return the descriptor path.

    Layout:
        root/config/cameras.cfg
        root/lidar/<name>.npy
        root/label/<name>.json
        root/images/cam_1/<name>.png
        root/frames/<name>.json
    """
    import json

    import cv2

    (root / "config").mkdir(parents=True, exist_ok=True)
    (root / "config" / "cameras.cfg").write_text(CAMERA_CFG, encoding="utf-8")

    (root / "lidar").mkdir(exist_ok=True)
    points = np.array([
        [0.0, 0.0, 10.0],
        [0.5, 0.5, 20.0],
        [0.0, 0.0, -5.0],
    ], dtype=np.float32)
    np.save(root / "lidar" / f"{name}.npy", points)

    frame = {
        "config": "config",
        "lidar_path": f"lidar/{name}.npy",
        "cam_1": f"images/cam_1/{name}.png",
    }

    if labels:
        (root / "label").mkdir(exist_ok=True)
        (root / "label" / f"{name}.json").write_text(json.dumps(LABELS), encoding="utf-8")
        frame["label"] = f"label/{name}.json"

    image_dir = root / "images" / "cam_1"
    image_dir.mkdir(parents=True, exist_ok=True)
    width, height = image_size
    cv2.imwrite(str(image_dir / f"{name}.png"), np.zeros((height, width, 3), dtype=np.uint8))

    (root / "frames").mkdir(exist_ok=True)
    descriptor = root / "frames" / f"{name}.json"
    descriptor.write_text(
        json.dumps({"frame": dict(frame, parent_dir=str(root))}),
        encoding="utf-8",
    )
    return descriptor


@pytest.fixture
def frame_path(tmp_path):
    """Descriptor of a complete single-camera frame on disk."""
    return write_frame(tmp_path / "run")
