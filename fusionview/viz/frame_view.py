"""Original/projected image pair for one camera view."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class FrameViewState:
    """
    Host-side display state of one camera view.

    Keeps the untouched camera image next to its rendered overlay so a viewer
    can switch between them without re-reading or re-rendering anything.

    Attributes:
        original: Camera image as loaded (RGB).
        projected: Same image with the overlay drawn, or None if not rendered.
        show_projection: Whether current() returns the projected image.
    """

    original: Optional[np.ndarray] = None
    projected: Optional[np.ndarray] = None
    show_projection: bool = False

    def set_original(self, image: np.ndarray):
        """Replace the source image; any rendered overlay is now stale."""
        self.original = image
        self.projected = None

    def set_projected(self, image: np.ndarray):
        if self.original is None:
            raise ValueError("Cannot set a projected image before the original")
        self.projected = image

    def toggle(self) -> bool:
        """Flip between original and projected; returns the new show_projection."""
        self.show_projection = not self.show_projection
        return self.show_projection

    def current(self) -> Optional[np.ndarray]:
        """The image to display: projected if requested and available."""
        if self.show_projection and self.projected is not None:
            return self.projected
        return self.original

    def reset(self):
        self.original = None
        self.projected = None
        self.show_projection = False
