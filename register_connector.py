#!/usr/bin/env python3
"""
Register a custom connector from an assets directory.

Usage:
    python register_connector.py --assets build/connector
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from connector_toolkit.cli import register_main

if __name__ == '__main__':
    sys.exit(register_main())
