#!/usr/bin/env python3
"""
mono-calib: single-camera checkerboard calibration

Main entry point for running from a source checkout.

Usage:
    python main.py "images/*.png" --rows 5 --cols 7 --output calibration_setup/intrinsics.yml
    python -m mono_calib ...

License: Apache 2.0
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))


def main():
    """Main entry point."""
    from mono_calib.cli import main as run_cli

    return run_cli()


if __name__ == "__main__":
    sys.exit(main())
