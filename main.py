#!/usr/bin/env python3
"""
Invalid Character Repair — Entry Point.

Usage:
    python main.py -d /ppro/data/SOH0001.TXT -l 129 -p 12900       # report
    python main.py -d /ppro/data/SOH0001.TXT -l 129 -i bad.txt -u   # fix list
    python main.py -d /ppro/data/SOH0001.TXT -l 129 -x -y -u -t     # full scan
"""

import sys

from recordfix.cli import main


if __name__ == "__main__":
    sys.exit(main())
