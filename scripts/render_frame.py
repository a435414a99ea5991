#!/usr/bin/env python3
"""
Render LiDAR points and 3D boxes onto the camera images of a frame.

Usage:
    python scripts/render_frame.py frames/000123.json
    python scripts/render_frame.py frames/ --all --config my_viewer.yaml
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fusionview.cli import main


if __name__ == "__main__":
    sys.exit(main())
