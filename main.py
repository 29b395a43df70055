#!/usr/bin/env python3
"""
Crokinole Round-Robin Scheduler
Entry point for the tournament scheduling system.
"""

import sys

try:
    from ortools.sat.python import cp_model
except ImportError:
    print("❌ OR-Tools is required for the feasibility checker.")
    print("Install with: pip install ortools")
    sys.exit(1)

if __name__ == "__main__":
    from crokinole_tournament.cli import main

    sys.exit(main())
