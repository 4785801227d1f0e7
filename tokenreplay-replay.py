#!/usr/bin/env python3
"""
TokenReplay - replay captured API transcripts

This is a convenience wrapper that calls the packaged CLI.
The actual implementation is in src/tokenreplay/cli.py

Usage:
    python tokenreplay-replay.py requestlog-customer-charges.json
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from tokenreplay.cli import main

if __name__ == '__main__':
    sys.exit(main())
