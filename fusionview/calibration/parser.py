"""
Camera configuration (``cameras.cfg``) parser.

The configuration is a block-structured key/value text, one ``config`` block
per camera:

    config {
      camera_dev: "cam_1"
      img_width: 1920
      img_height: 1080
      f_x: 1000.0
      f_y: 1000.0
      o_x: 960.0
      o_y: 540.0
      k_1: 0.0            # k_1..k_4 optional, default 0
      model_type: PINHOLE # optional
      position { x: 0.1 y: 0.0 z: 1.5 }
      orientation { qx: 0.0 qy: 0.0 qz: 0.0 qw: 1.0 }
      install_angle_error { x: 0.0 y: 0.0 z: 0.0 }   # optional
    }

Keys are looked up anywhere inside their block (first match in document
order), so wrappers such as ``intrinsic { ... }`` are tolerated. Fields may be
separated by whitespace, ``,`` or ``;``. A block that lacks a required field
is skipped and reported as a ParseError; the other blocks are still parsed. Parsing never raises on bad content.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .camera import CalibrationSet, CameraCalibration
from .extrinsics import QUATERNION_NORM_EPS, CameraExtrinsics
from .intrinsics import DEFAULT_CAMERA_MODEL, CameraIntrinsics

logger = logging.getLogger(__name__)

BLOCK_NAME = "config"
CAMERA_ID_KEY = "camera_dev"

SIZE_KEYS = ("img_width", "img_height")
FOCAL_KEYS = ("f_x", "f_y")
PRINCIPAL_KEYS = ("o_x", "o_y")
DISTORTION_KEYS = ("k_1", "k_2", "k_3", "k_4")
POSITION_KEYS = ("x", "y", "z")
ORIENTATION_KEYS = ("qx", "qy", "qz", "qw")

_TOKEN_RE = re.compile(
    r"""
      (?P<comment>\#[^\n]*)
    | (?P<open>\{)
    | (?P<close>\})
    | (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<key>[A-Za-z_][\w.]*)\s*:
    | (?P<word>[^\s{}:"\#,;]+)
    | (?P<space>[\s,;]+)
    | (?P<other>.)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class ParseError:
    """
    Why one calibration block was skipped.

    Attributes:
        block_index: 0-based index of the ``config`` block, or None for
            problems with the text as a whole.
        camera_id: Device id when the block had one.
        missing_fields: Required keys that were absent.
        invalid_fields: Keys present but not usable (non-numeric,
            non-positive sizes or focal lengths, zero quaternion).
        message: Human-readable summary.
    """

    block_index: Optional[int]
    camera_id: Optional[str]
    missing_fields: Tuple[str, ...] = ()
    invalid_fields: Tuple[str, ...] = ()
    message: str = ""

    def __str__(self) -> str:
        where = f"block {self.block_index}" if self.block_index is not None else "config"
        if self.camera_id:
            where += f" ({self.camera_id})"
        return f"{where}: {self.message}"


@dataclass
class _Block:
    """A ``name { ... }`` node of the configuration text."""

    name: str
    entries: List[Tuple[str, Union[str, "_Block"]]] = field(default_factory=list)

    def find_value(self, key: str) -> Optional[str]:
        """First scalar named ``key`` at any depth, in document order."""
        for name, value in self.entries:
            if isinstance(value, _Block):
                found = value.find_value(key)
                if found is not None:
                    return found
            elif name == key:
                return value
        return None

    def find_block(self, name: str) -> Optional["_Block"]:
        """First sub-block named ``name`` at any depth, in document order."""
        for entry_name, value in self.entries:
            if not isinstance(value, _Block):
                continue
            if entry_name == name:
                return value
            found = value.find_block(name)
            if found is not None:
                return found
        return None

    def blocks(self, name: str) -> List["_Block"]:
        """Direct sub-blocks named ``name``."""
        return [v for n, v in self.entries if n == name and isinstance(v, _Block)]


def _unquote(token: str) -> str:
    return re.sub(r"\\(.)", r"\1", token[1:-1])


def _tokenize_blocks(text: str) -> Tuple[_Block, int]:
    """
    Build the block tree of a configuration text.

    Returns:
        Tuple of (root block, number of blocks left unterminated at EOF).
    """
    root = _Block(name="")
    stack = [root]
    pending_name: Optional[str] = None

    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup
        token = match.group(kind)

        if kind in ("comment", "space", "other"):
            continue

        current = stack[-1]
        if kind == "key":
            pending_name = match.group("key")
        elif kind == "word":
            if pending_name is None:
                # Bare name such as ``config`` or ``position`` before a brace
                pending_name = token
            else:
                current.entries.append((pending_name, token))
                pending_name = None
        elif kind == "string":
            if pending_name is not None:
                current.entries.append((pending_name, _unquote(token)))
                pending_name = None
        elif kind == "open":
            child = _Block(name=pending_name or "")
            current.entries.append((child.name, child))
            stack.append(child)
            pending_name = None
        elif kind == "close":
            if len(stack) > 1:
                stack.pop()
            pending_name = None

    return root, len(stack) - 1


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _parse_size(value: Optional[str]) -> Optional[int]:
    number = _parse_float(value)
    if number is None or not number.is_integer() or number <= 0:
        return None
    return int(number)


class _FieldReader:
    """Collects missing/invalid keys while reading one block."""

    def __init__(self, block: _Block):
        self.block = block
        self.missing: List[str] = []
        self.invalid: List[str] = []

    def _record(self, raw: Optional[str], parsed, key: str):
        if raw is None:
            self.missing.append(key)
        elif parsed is None:
            self.invalid.append(key)
        return parsed

    def size(self, key: str) -> Optional[int]:
        raw = self.block.find_value(key)
        return self._record(raw, _parse_size(raw), key)

    def positive(self, key: str) -> Optional[float]:
        raw = self.block.find_value(key)
        value = _parse_float(raw)
        if value is not None and value <= 0:
            value = None
        return self._record(raw, value, key)

    def number(self, key: str, block: Optional[_Block] = None, prefix: str = "") -> Optional[float]:
        source = self.block if block is None else block
        raw = source.find_value(key)
        return self._record(raw, _parse_float(raw), prefix + key)

    def optional(self, key: str, default: float = 0.0, block: Optional[_Block] = None) -> float:
        source = self.block if block is None else block
        raw = source.find_value(key)
        if raw is None:
            return default
        value = _parse_float(raw)
        if value is None:
            logger.warning(f"Ignoring non-numeric optional field {key}={raw!r}")
            return default
        return value

    def vector(self, block_name: str, keys: Tuple[str, ...]) -> Optional[List[float]]:
        sub = self.block.find_block(block_name)
        if sub is None:
            self.missing.extend(f"{block_name}.{k}" for k in keys)
            return None
        values = [self.number(k, block=sub, prefix=f"{block_name}.") for k in keys]
        if any(v is None for v in values):
            return None
        return values


def _build_camera(
    block: _Block,
    index: int,
) -> Tuple[Optional[CameraCalibration], Optional[ParseError]]:
    """Turn one ``config`` block into a CameraCalibration, or explain why not."""
    camera_id = block.find_value(CAMERA_ID_KEY)
    if not camera_id:
        return None, ParseError(
            block_index=index,
            camera_id=None,
            missing_fields=(CAMERA_ID_KEY,),
            message=f"missing {CAMERA_ID_KEY}",
        )

    reader = _FieldReader(block)

    width, height = (reader.size(k) for k in SIZE_KEYS)
    fx, fy = (reader.positive(k) for k in FOCAL_KEYS)
    cx, cy = (reader.number(k) for k in PRINCIPAL_KEYS)
    distortion = tuple(reader.optional(k) for k in DISTORTION_KEYS)
    model = block.find_value("model_type") or DEFAULT_CAMERA_MODEL

    position = reader.vector("position", POSITION_KEYS)
    orientation = reader.vector("orientation", ORIENTATION_KEYS)

    angle_block = block.find_block("install_angle_error")
    install_angle_error = [
        reader.optional(k, block=angle_block) if angle_block is not None else 0.0
        for k in POSITION_KEYS
    ]

    if orientation is not None and math.sqrt(sum(q * q for q in orientation)) < QUATERNION_NORM_EPS:
        reader.invalid.append("orientation")
        orientation = None

    if reader.missing or reader.invalid:
        parts = []
        if reader.missing:
            parts.append("missing " + ", ".join(reader.missing))
        if reader.invalid:
            parts.append("invalid " + ", ".join(reader.invalid))
        return None, ParseError(
            block_index=index,
            camera_id=camera_id,
            missing_fields=tuple(reader.missing),
            invalid_fields=tuple(reader.invalid),
            message="; ".join(parts),
        )

    try:
        calibration = CameraCalibration(
            camera_id=camera_id,
            intrinsics=CameraIntrinsics(
                width=width,
                height=height,
                fx=fx,
                fy=fy,
                cx=cx,
                cy=cy,
                distortion=distortion,
                model=model,
            ),
            extrinsics=CameraExtrinsics(position=position, orientation=orientation),
            install_angle_error=install_angle_error,
        )
    except ValueError as exc:
        return None, ParseError(block_index=index, camera_id=camera_id, message=str(exc))

    return calibration, None


def parse_calibration_config(text: str) -> CalibrationSet:
    """
    Parse camera configuration text into a CalibrationSet.

    Malformed blocks are logged, skipped and listed in ``CalibrationSet.errors``;
    a later block with an already-seen camera id replaces the earlier one.

    Args:
        text: Raw contents of a cameras.cfg file.

    Returns:
        CalibrationSet: Calibrated cameras plus per-block errors.
    """
    root, unterminated = _tokenize_blocks(text)
    blocks = root.blocks(BLOCK_NAME)

    cameras: Dict[str, CameraCalibration] = {}
    errors: List[ParseError] = []

    if not blocks:
        error = ParseError(
            block_index=None,
            camera_id=None,
            message=f"no '{BLOCK_NAME}' blocks found",
        )
        logger.warning(f"Calibration parse: {error}")
        return CalibrationSet(errors=(error,))

    if unterminated:
        # The last block ran to EOF; its fields are still read as far as they go
        logger.warning(f"Calibration text ends inside {unterminated} open block(s)")

    for index, block in enumerate(blocks):
        calibration, error = _build_camera(block, index)
        if error is not None:
            logger.warning(f"Skipping camera config {error}")
            errors.append(error)
            continue

        if calibration.camera_id in cameras:
            logger.warning(
                f"Duplicate camera_dev '{calibration.camera_id}' in block {index}; "
                f"replacing the earlier block"
            )
        cameras[calibration.camera_id] = calibration
        logger.debug(f"Loaded calibration {calibration}")

    logger.info(
        f"Parsed {len(cameras)} camera calibration(s) from {len(blocks)} block(s)"
        + (f", {len(errors)} skipped" if errors else "")
    )
    return CalibrationSet(cameras, errors=tuple(errors))


def load_calibration_file(calib_file: Union[str, Path]) -> CalibrationSet:
    """
    Load and parse a camera configuration file.

    Args:
        calib_file: Path to cameras.cfg.

    Returns:
        CalibrationSet: Parsed calibration.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    calib_file = Path(calib_file)
    if not calib_file.exists():
        raise FileNotFoundError(f"Calibration file not found: {calib_file}")

    return parse_calibration_config(calib_file.read_text(encoding="utf-8"))
