#!/usr/bin/env python3
"""
Deploy the function app, generate sample data and print invocation URLs.

Usage:
    python deploy_functions.py --resource-group my-rg
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from connector_toolkit.cli import deploy_main

if __name__ == '__main__':
    sys.exit(deploy_main())
