"""
Module execution entry point.

Allows running with: python -m idreg_cli
"""

import sys
from idreg_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
