#!/usr/bin/env python3
"""
JourneyTap - browser trace distillation and regression testing

This is a convenience wrapper that calls the packaged CLI.
The actual implementation is in src/journeytap/cli.py

Usage:
    python journeytap.py summarize trace.json --show-journey
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from journeytap.cli import main

if __name__ == '__main__':
    sys.exit(main())
