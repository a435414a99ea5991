"""
Oriented 3D bounding boxes from frame annotations.

Corner Ordering:
================
Corners enumerate the signs of the half-extents (x, y, z) in this order:

    0: (-, -, -)    4: (+, -, -)
    1: (-, -, +)    5: (+, -, +)
    2: (-, +, -)    6: (+, +, -)
    3: (-, +, +)    7: (+, +, +)

so corner i has x sign from bit 2, y sign from bit 1 and z sign from bit 0.
BOX_EDGES indexes corners positionally:

    y = - face: 0-1, 1-5, 5-4, 4-0
    y = + face: 2-3, 3-7, 7-6, 6-2
    connecting: 0-2, 1-3, 5-7, 4-6

World Corners:
==============
    corner_world = R(rotation) @ corner_local + position

where R = Rx(rx) · Ry(ry) · Rz(rz) (intrinsic XYZ Euler angles in radians).
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.spatial.transform import Rotation

Color = Tuple[int, int, int]

CORNER_SIGNS = np.array(list(itertools.product((-1.0, 1.0), repeat=3)))

EDGE_GROUPS: Dict[str, Tuple[Tuple[int, int], ...]] = {
    "bottom": ((0, 1), (1, 5), (5, 4), (4, 0)),
    "top": ((2, 3), (3, 7), (7, 6), (6, 2)),
    "vertical": ((0, 2), (1, 3), (5, 7), (4, 6)),
}

BOX_EDGES: Tuple[Tuple[int, int], ...] = (
    EDGE_GROUPS["bottom"] + EDGE_GROUPS["top"] + EDGE_GROUPS["vertical"]
)


class ObjectType(str, Enum):
    """Annotated object classes."""

    CAR = "Car"
    BUS = "Bus"
    TRUCK = "Truck"
    PEDESTRIAN = "Pedestrian"
    RIDER = "Rider"
    MOTOR = "Motor"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "ObjectType":
        """Map a label's obj_type string to an ObjectType (UNKNOWN if unrecognised)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


# Object class color palette (RGB)
BOX_COLORS: Dict[ObjectType, Color] = {
    ObjectType.CAR: (44, 160, 44),          # Green
    ObjectType.BUS: (255, 127, 14),         # Orange
    ObjectType.TRUCK: (214, 39, 40),        # Red
    ObjectType.PEDESTRIAN: (31, 119, 180),  # Blue
    ObjectType.RIDER: (148, 103, 189),      # Purple
    ObjectType.MOTOR: (140, 86, 75),        # Brown
}
DEFAULT_BOX_COLOR: Color = (227, 119, 194)  # Pink


def color_for_type(object_type: Union[ObjectType, str]) -> Color:
    """RGB color for an object type; unknown types get DEFAULT_BOX_COLOR."""
    return BOX_COLORS.get(ObjectType.parse(object_type), DEFAULT_BOX_COLOR)


def _vector3(value: Union[Mapping[str, Any], Sequence[float], np.ndarray], name: str) -> np.ndarray:
    """Accept {x, y, z} mappings or 3-sequences."""
    if isinstance(value, Mapping):
        try:
            value = [value["x"], value["y"], value["z"]]
        except KeyError as exc:
            raise ValueError(f"{name} is missing component {exc.args[0]!r}") from None
    vector = np.asarray(value, dtype=np.float64).flatten()
    if vector.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ValueError(f"{name} must be finite, got {vector.tolist()}")
    vector.flags.writeable = False
    return vector


@dataclass(frozen=True, eq=False)
class OrientedBox:
    """
    A 3D annotated object.

    Attributes:
        object_id: Annotation id (obj_id).
        object_type: Object class.
        position: Box center (3,) in the sensor frame.
        scale: Full box extents (3,) along the local x, y, z axes.
        rotation: Intrinsic XYZ Euler angles (3,) in radians.
        type_name: obj_type exactly as written in the label, used for display.

    Example:
        >>> box = OrientedBox("7", ObjectType.CAR, position=[0, 0, 10],
        ...                   scale=[4.5, 1.8, 1.5], rotation=[0, 0, 0.3])
        >>> box.corners().shape
        (8, 3)
    """

    object_id: str
    object_type: ObjectType
    position: np.ndarray
    scale: np.ndarray
    rotation: np.ndarray
    type_name: Optional[str] = None

    def __post_init__(self):
        """Validate and freeze geometry."""
        object.__setattr__(self, "object_id", str(self.object_id))
        object.__setattr__(self, "object_type", ObjectType.parse(self.object_type))
        object.__setattr__(self, "position", _vector3(self.position, "position"))
        object.__setattr__(self, "scale", _vector3(self.scale, "scale"))
        object.__setattr__(self, "rotation", _vector3(self.rotation, "rotation"))
        if np.any(self.scale < 0):
            raise ValueError(f"scale must be non-negative, got {self.scale.tolist()}")
        if self.type_name is None:
            object.__setattr__(self, "type_name", self.object_type.value)

    @property
    def rotation_matrix(self) -> np.ndarray:
        """3x3 rotation R = Rx · Ry · Rz."""
        return Rotation.from_euler("XYZ", self.rotation).as_matrix()

    @property
    def color(self) -> Color:
        return color_for_type(self.object_type)

    @property
    def label(self) -> str:
        """Display text, e.g. ``"Car 12"``."""
        return f"{self.type_name} {self.object_id}".strip()

    def local_corners(self) -> np.ndarray:
        """(8, 3) corners in the box frame, in the documented order."""
        return CORNER_SIGNS * (self.scale / 2.0)

    def corners(self) -> np.ndarray:
        """
        World-space corners.

        Returns:
            np.ndarray: (8, 3) corners, rotated then translated.
        """
        return self.local_corners() @ self.rotation_matrix.T + self.position

    def edges(self) -> np.ndarray:
        """(12, 2, 3) world-space edge segments following BOX_EDGES."""
        corners = self.corners()
        return np.array([[corners[i], corners[j]] for i, j in BOX_EDGES])

    @classmethod
    def from_label(cls, record: Mapping[str, Any]) -> "OrientedBox":
        """
        Build a box from one label record.

        Expected layout::

            {"obj_id": "12", "obj_type": "Car",
             "psr": {"position": {"x": .., "y": .., "z": ..},
                     "scale": {...}, "rotation": {...}}}

        Raises:
            ValueError: If the record is malformed.
        """
        if not isinstance(record, Mapping):
            raise ValueError(f"label record must be an object, got {type(record).__name__}")
        psr = record.get("psr")
        if not isinstance(psr, Mapping):
            raise ValueError("label record has no 'psr' object")
        for key in ("position", "scale", "rotation"):
            if key not in psr:
                raise ValueError(f"psr is missing '{key}'")

        type_name = str(record.get("obj_type", ObjectType.UNKNOWN.value))
        return cls(
            object_id=str(record.get("obj_id", "")),
            object_type=ObjectType.parse(type_name),
            position=psr["position"],
            scale=psr["scale"],
            rotation=psr["rotation"],
            type_name=type_name,
        )

    def __repr__(self) -> str:
        return (
            f"OrientedBox(id={self.object_id!r}, type={self.type_name}, "
            f"position={np.round(self.position, 3).tolist()}, "
            f"scale={np.round(self.scale, 3).tolist()})"
        )
