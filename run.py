#!/usr/bin/env python3
"""Convenience runner for the Freelines command line.

Usage:
    python run.py record --gpx descent.gpx
"""
import logging
import sys

from freelines.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
