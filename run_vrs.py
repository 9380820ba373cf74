#!/usr/bin/env python3
"""
Entry point script for the VRS density map preview.

Usage:
    python run_vrs.py [--width W] [--height H] [--texel-size TX TY]
                      [--min-radius R] [--strength S] [--region X Y W H]
                      [--stereo] [--save PATH]

Examples:
    python run_vrs.py
    python run_vrs.py --stereo --strength 2.5
    python run_vrs.py --width 2048 --height 2048 --save density.png
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from VRS.application import main

if __name__ == '__main__':
    main()
