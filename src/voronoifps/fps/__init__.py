"""
Farthest Point Sampling Engine
==============================
The core implementation of the structure-aware farthest point sampling.

Why is this file needed?
------------------------
1. Geometry: It implements the incremental Voronoi bookkeeping that keeps,
   for every point, its nearest selected center.
2. Selection: It drives the farthest point loop at structure granularity.

Note: This package should be pure Python/NumPy/Numba and should NOT do any I/O.
"""
