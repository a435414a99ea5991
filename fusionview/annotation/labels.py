"""
Frame label loading.

A label file is a JSON list of object records:

    [
      {"obj_id": "1", "obj_type": "Car",
       "psr": {"position": {"x": 10.2, "y": -1.5, "z": 0.8},
               "scale":    {"x": 4.5,  "y": 1.9,  "z": 1.6},
               "rotation": {"x": 0.0,  "y": 0.0,  "z": 1.57}}},
      ...
    ]
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from .box import OrientedBox

logger = logging.getLogger(__name__)


def parse_labels(records: Iterable[Any]) -> List[OrientedBox]:
    """
    Build OrientedBoxes from label records.

    Malformed records are logged and skipped; the rest are kept in order.

    Args:
        records: Decoded label records.

    Returns:
        List of OrientedBox.
    """
    boxes = []
    skipped = 0

    for index, record in enumerate(records):
        try:
            boxes.append(OrientedBox.from_label(record))
        except (ValueError, TypeError) as exc:
            skipped += 1
            logger.warning(f"Skipping label record {index}: {exc}")

    logger.debug(f"Parsed {len(boxes)} boxes ({skipped} skipped)")
    return boxes


def load_label_file(label_path: Union[str, Path]) -> List[OrientedBox]:
    """
    Load boxes from a JSON label file.

    Args:
        label_path: Path to the label JSON.

    Returns:
        List of OrientedBox.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is not a JSON list.
    """
    label_path = Path(label_path)
    if not label_path.exists():
        raise FileNotFoundError(f"Label file not found: {label_path}")

    with open(label_path, "r", encoding="utf-8") as f:
        try:
            records = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid label JSON in {label_path}: {exc}") from exc

    if not isinstance(records, list):
        raise ValueError(
            f"Label file must contain a list of objects, got {type(records).__name__}"
        )

    boxes = parse_labels(records)
    logger.info(f"Loaded {len(boxes)} objects from {label_path.name}")
    return boxes
