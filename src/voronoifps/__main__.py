"""Command-line interface."""
import sys

from voronoifps.main import main

if __name__ == "__main__":
    sys.exit(main())
