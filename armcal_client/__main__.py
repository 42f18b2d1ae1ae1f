#!/usr/bin/env python
"""Allows running the calibration workflow with ``python -m armcal_client``."""

import sys

from armcal_client.main import main

if __name__ == "__main__":
    sys.exit(main())
