"""
Entry point for running the client CLI as a module.

Allows running:
    python -m armis_centrix policies list
"""

import sys

from armis_centrix.cli import main

if __name__ == "__main__":
    sys.exit(main())
