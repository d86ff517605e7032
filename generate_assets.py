#!/usr/bin/env python3
"""
Generate custom connector assets from a config file.

Usage:
    python generate_assets.py --config connector.json --output build/connector
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from connector_toolkit.cli import assets_main

if __name__ == '__main__':
    sys.exit(assets_main())
