#!/usr/bin/env python3
"""
Main entry point script for MTG Commander Analyzer.

Runs the command-line interface from a source checkout without installing
the package, e.g. ``python main.py analyze my_deck.txt``.
"""

import sys
from pathlib import Path

# Make the package importable from the checkout
sys.path.insert(0, str(Path(__file__).parent))

from mtg_commander_analyzer.cli import main

if __name__ == "__main__":
    main()
