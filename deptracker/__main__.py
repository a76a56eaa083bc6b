"""
Executable module for deptracker.

Running:
    python -m deptracker

is equivalent to:
    deptracker
"""

from __future__ import annotations

import sys

from deptracker.cli import main

if __name__ == "__main__":
    sys.exit(main())
