"""
Incremental Voronoi Decomposition
=================================
Keeps, for a fixed point cloud and a growing list of centers, the nearest
center of every point and the radius of every Voronoi cell.

Why is this file needed?
------------------------
1. Speed: Farthest point sampling needs the distance of every point to its
   nearest center after each selection. Recomputing this from scratch costs
   O(n·k) distance evaluations, most of which are provably useless.
2. Pruning: When a center is added, a cell whose points all lie within half
   the center-to-new-center distance can not lose any point, and is skipped
   entirely. Inside the remaining cells the same bound skips single points.
3. Summary: Every cell exposes its squared radius and farthest point, which is
   all the selection loop needs to pick the next point.

Classes:
    Cell: Statistics of a single Voronoi cell.
    Cells: Read-only snapshot of all cells, in selection order.
    VoronoiDecomposer: The incremental data structure.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import operator
from typing import TYPE_CHECKING, Iterator, NamedTuple

import numpy as np

from voronoifps.fps.metric import pruning_factor, reassign_members, squared_distances_to

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class Cell(NamedTuple):
    center: int
    radius2: float
    farthest: int


@dataclass(frozen=True, eq=False)
class Cells:
    """
    Snapshot of the Voronoi cells, indexed by selection order.

    All arrays are read-only and have one entry per center.
    """
    centers: npt.NDArray[np.int64]
    radius2: npt.NDArray[np.float64]
    farthest: npt.NDArray[np.int64]

    def __len__(self) -> int:
        return self.centers.shape[0]

    def __getitem__(self, i: int) -> Cell:
        return Cell(
            center=int(self.centers[i]),
            radius2=float(self.radius2[i]),
            farthest=int(self.farthest[i]),
        )

    def __iter__(self) -> Iterator[Cell]:
        for i in range(len(self)):
            yield self[i]


def _read_only(array: npt.NDArray) -> npt.NDArray:
    array.setflags(write=False)
    return array


def _check_finite(dist2: npt.NDArray[np.float64], what: str) -> None:
    # Overflowing distances would silently defeat the pruning bound
    if not np.all(np.isfinite(dist2)):
        raise FloatingPointError(f"Non-finite {what} squared distance, coordinates are too large.")


class VoronoiDecomposer:
    """
    Voronoi decomposition of a point cloud, refined one center at a time.
    """
    def __init__(
        self,
        points: npt.ArrayLike,
        initial: int,
        prune: bool = True,
    ) -> None:
        """
        Create the decomposition with a single center.

        Every point starts in the cell of `initial`, which costs one full scan
        of the point cloud.

        Args:
            points: (n, d) matrix of finite coordinates, row i is point i.
            initial: Index of the first center.
            prune: Skip distance evaluations ruled out by the triangle
                inequality. Disabling it gives the same result, only slower.

        Raises:
            ValueError: If `points` is not a non-empty 2D array of finite values.
            IndexError: If `initial` is not a valid point index.
            FloatingPointError: If squared distances overflow.
        """
        points = np.array(points, dtype=np.float64, order="C", copy=True)
        if points.ndim != 2:
            raise ValueError(f"Expected points of shape (n, d), got {points.shape}.")
        if points.shape[0] == 0:
            raise ValueError("Can not build a Voronoi decomposition without points.")
        if not np.all(np.isfinite(points)):
            bad = np.flatnonzero(~np.all(np.isfinite(points), axis=1))
            raise ValueError(
                f"Points contain non-finite coordinates (first offending row: {bad[0]})."
            )

        self._points = _read_only(points)
        self._prune = bool(prune)
        self._bound_factor = pruning_factor(points.shape[1])
        n = self.n_points
        initial = self._check_index(initial)

        # Per point ownership: center ordinal and squared distance to it
        self._owner: npt.NDArray[np.int64] = np.zeros(n, dtype=np.int64)
        self._dist2: npt.NDArray[np.float64] = squared_distances_to(
            self._points, np.arange(n, dtype=np.int64), self._points[initial]
        )
        self._dist2[initial] = 0.0
        _check_finite(self._dist2, "point-to-center")
        self._is_center: npt.NDArray[np.bool_] = np.zeros(n, dtype=np.bool_)
        self._is_center[initial] = True

        # Per center statistics, at most n centers
        self._centers: npt.NDArray[np.int64] = np.empty(n, dtype=np.int64)
        self._radius2: npt.NDArray[np.float64] = np.zeros(n, dtype=np.float64)
        self._farthest: npt.NDArray[np.int64] = np.empty(n, dtype=np.int64)
        self._n_centers = 1
        self._centers[0] = initial

        # Reverse index: sorted non-center members of every cell
        everyone = np.arange(n, dtype=np.int64)
        self._members: list[npt.NDArray[np.int64]] = [everyone[everyone != initial]]
        self._update_cell(0)

        self._snapshot: Cells | None = None
        self.n_distance_evaluations = 0

        logger.debug(
            f"Voronoi decomposition of {n} points in {self.dimension}D initialized "
            f"at point {initial} (radius2={self._radius2[0]:.6g})."
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(n_points={self.n_points}, "
            f"n_centers={self.n_centers}, prune={self._prune})"
        )

    @property
    def points(self) -> npt.NDArray[np.float64]:
        """Read-only view of the point cloud."""
        return self._points

    @property
    def n_points(self) -> int:
        return self._points.shape[0]

    @property
    def dimension(self) -> int:
        return self._points.shape[1]

    @property
    def n_centers(self) -> int:
        return self._n_centers

    @property
    def centers(self) -> npt.NDArray[np.int64]:
        """Point indices of the centers, in selection order."""
        return _read_only(self._centers[:self._n_centers].copy())

    def is_center(self, index: int) -> bool:
        return bool(self._is_center[self._check_index(index)])

    def assignment(self) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.float64]]:
        """
        Current nearest center of every point.

        Returns:
            nearest: (n, ) point index of the nearest center (a center is its own nearest center).
            dist2: (n, ) squared distance to that center.
        """
        nearest = self._centers[self._owner]
        return _read_only(nearest), _read_only(self._dist2.copy())

    def cells(self) -> Cells:
        """
        Radius and farthest point of every cell, center 0 first.

        The snapshot is cached until the next call to `add_point`.
        """
        if self._snapshot is None:
            k = self._n_centers
            self._snapshot = Cells(
                centers=_read_only(self._centers[:k].copy()),
                radius2=_read_only(self._radius2[:k].copy()),
                farthest=_read_only(self._farthest[:k].copy()),
            )
        return self._snapshot

    def add_point(self, index: int) -> None:
        """
        Promote a point to be a new center and update the decomposition.

        Only cells whose radius exceeds half the distance between their center
        and the new center can lose points. Inside those cells, points closer
        to their center than half that distance are not even looked at.

        Args:
            index: Index of the point to promote.

        Raises:
            IndexError: If `index` is not a valid point index.
            ValueError: If `index` is already a center.
            FloatingPointError: If squared distances overflow.
        """
        index = self._check_index(index)
        if self._is_center[index]:
            raise ValueError(f"Point {index} is already a center.")

        new = self._n_centers
        previous = int(self._owner[index])

        center = self._points[index]
        center_dist2 = squared_distances_to(self._points, self._centers[:new], center)
        _check_finite(center_dist2, "center-to-center")
        bounds = center_dist2 * self._bound_factor

        # The new center leaves its old cell
        members = self._members[previous]
        self._members[previous] = members[members != index]
        dirty = {previous}

        self._is_center[index] = True
        self._owner[index] = new
        self._dist2[index] = 0.0
        self._centers[new] = index

        if self._prune:
            candidates = np.flatnonzero(self._radius2[:new] > bounds)
        else:
            candidates = np.arange(new)

        evaluated = 0
        captured: list[npt.NDArray[np.int64]] = []
        for c in candidates:
            members = self._members[c]
            if members.size == 0:
                continue
            moved, n_eval = reassign_members(
                self._points, members, self._dist2, center, float(bounds[c]), self._prune
            )
            evaluated += n_eval
            if moved.any():
                taken = members[moved]
                self._owner[taken] = new
                captured.append(taken)
                self._members[c] = members[~moved]
                dirty.add(int(c))

        if captured:
            self._members.append(np.sort(np.concatenate(captured)))
        else:
            self._members.append(np.empty(0, dtype=np.int64))
        self._n_centers += 1

        for c in dirty:
            self._update_cell(c)
        self._update_cell(new)

        self.n_distance_evaluations += evaluated
        self._snapshot = None

        logger.debug(
            f"Center #{new} at point {index}: scanned {candidates.size}/{new} cells, "
            f"{evaluated} distance evaluations, "
            f"{sum(t.size for t in captured)} points reassigned."
        )

    def _update_cell(self, c: int) -> None:
        """Recompute radius and farthest point of cell `c` from its members."""
        members = self._members[c]
        if members.size == 0:
            self._radius2[c] = 0.0
            self._farthest[c] = self._centers[c]
            return

        dist2 = self._dist2[members]
        # argmax keeps the first maximum, members are sorted by point index
        j = int(np.argmax(dist2))
        self._radius2[c] = dist2[j]
        self._farthest[c] = members[j]

    def _check_index(self, index: int) -> int:
        index = operator.index(index)
        if not 0 <= index < self.n_points:
            raise IndexError(f"Point index {index} out of range for {self.n_points} points.")
        return index
