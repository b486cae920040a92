#!/usr/bin/env python3
"""OverTimer — entry point.

Run with:
    python main.py --target 300
    python -m overtimer --target 300
"""

import sys

from overtimer.__main__ import main


if __name__ == "__main__":
    sys.exit(main())
