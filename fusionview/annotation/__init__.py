"""
3D object annotations.

Classes:
    OrientedBox: Annotated box with derived world-space corners.
    ObjectType: Known object classes.

Functions:
    color_for_type: Palette lookup for an object class.
    parse_labels: Boxes from decoded label records.
    load_label_file: Boxes from a label JSON file.
"""

from .box import (
    BOX_COLORS,
    BOX_EDGES,
    DEFAULT_BOX_COLOR,
    ObjectType,
    OrientedBox,
    color_for_type,
)
from .labels import load_label_file, parse_labels

__all__ = [
    "BOX_COLORS",
    "BOX_EDGES",
    "DEFAULT_BOX_COLOR",
    "ObjectType",
    "OrientedBox",
    "color_for_type",
    "parse_labels",
    "load_label_file",
]
