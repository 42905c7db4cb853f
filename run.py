"""
Entry Point Script (Bootstrap)
==============================
Runs the `select-structures` tool from a source checkout, without installing.

Why is this file needed?
------------------------
1. It is located outside the 'src' package to act as a convenient runner.
2. It modifies 'sys.path' to ensure Python can resolve imports like
   'from voronoifps.fps...' without errors.

Usage:
    $ python run.py --points points.npy --structures structures.npy -n 100 -o selected.npy --radius radius.npy
"""
import sys
import os

# Add the 'src' directory to the Python path
current_dir: str = os.path.dirname(os.path.abspath(__file__))
src_path: str = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

from voronoifps.main import main

if __name__ == "__main__":
    sys.exit(main())
