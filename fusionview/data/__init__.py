"""Frame descriptor and point cloud loading."""

from .frame_loader import (
    Frame,
    FrameDescriptor,
    FrameLoader,
    FrameSequence,
    join_paths,
    load_frame_descriptor,
    load_point_cloud,
)

__all__ = [
    "Frame",
    "FrameDescriptor",
    "FrameLoader",
    "FrameSequence",
    "join_paths",
    "load_frame_descriptor",
    "load_point_cloud",
]
