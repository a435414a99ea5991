"""LiDAR/camera projection and overlay rendering for annotated capture frames."""

__version__ = "0.1.0"

from . import calibration
from . import annotation
from . import projection
from . import data
from . import viz
from . import utils
