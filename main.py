"""Research Engine - Multi-agent Topic Research

Run from a checkout without installing: python main.py "topic" --depth basic
"""

import sys

from research_engine.cli import main

if __name__ == "__main__":
    sys.exit(main())
