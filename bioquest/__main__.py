"""
Entry point for running the app as a module: python -m bioquest
"""

import sys
from bioquest.cli import main

if __name__ == "__main__":
    sys.exit(main())
