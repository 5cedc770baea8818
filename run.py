#!/usr/bin/env python3
"""
Launcher for running the workflow tool from a source checkout without
installing it.

Examples:
    python run.py --explain
    python run.py --create-bug --title "Login fails on IE" --new
    python run.py --list-my-work-items
    python run.py --commit-and-pr --title "Fix login" --reviewers alice
"""

import sys
from pathlib import Path

# Packages live next to this file
sys.path.insert(0, str(Path(__file__).resolve().parent))

from entry_points.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
