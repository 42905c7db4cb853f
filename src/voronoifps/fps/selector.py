"""
Structure-Aware Selection
=========================
Farthest point sampling where the unit of selection is a structure (a group
of points sharing the same id) rather than a single point.

Why is this file needed?
------------------------
Points of a dataset usually come in groups (e.g. all atomic environments of
one structure). Once any point of a structure is selected, the rest of that
structure is added as well, so a structure is either fully represented in the
selection or absent from it.

Classes:
    SelectionResult: Outputs of a selection run.
    StructureAwareSelector: Drives the Voronoi decomposition.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import operator
from typing import TYPE_CHECKING, Iterable

import numpy as np

from voronoifps.fps.decomposer import VoronoiDecomposer
from voronoifps.config import DEFAULT_INITIAL_INDEX

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


def find_max(values: Iterable[float]) -> tuple[int, float]:
    """
    Get both the maximal value in `values` and the position of this maximal value.

    The first maximal value wins ties.

    Raises:
        ValueError: If `values` is empty.
        FloatingPointError: If `values` contains NaN.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise ValueError("Got an empty sequence.")
    if np.isnan(values).any():
        raise FloatingPointError("Got NaN value.")
    position = int(np.argmax(values))
    return position, float(values[position])


@dataclass(eq=False)
class SelectionResult:
    """
    Outputs of a structure-aware selection.

    Attributes:
        structures: Selected structure ids, in selection order (seed structure first).
        radius2: One squared radius per point added to the decomposition,
            in the order the points were added.
        points: Point indices in the order they were added.
        picked: Positions in `points` of the seed and of the points picked by
            farthest point sampling; the other points were absorbed.
    """
    structures: npt.NDArray[np.integer]
    radius2: npt.NDArray[np.float64]
    points: npt.NDArray[np.int64]
    picked: npt.NDArray[np.int64]

    @property
    def n_structures(self) -> int:
        return self.structures.shape[0]

    @property
    def n_points(self) -> int:
        return self.points.shape[0]


class StructureAwareSelector:
    """
    Select whole structures by farthest point sampling.
    """
    def __init__(
        self,
        points: npt.ArrayLike,
        structures: npt.ArrayLike,
        initial: int = DEFAULT_INITIAL_INDEX,
        prune: bool = True,
    ) -> None:
        """
        Initialize the selector.

        Args:
            points: (n, d) point matrix.
            structures: (n, ) integer structure id of every point.
            initial: Index of the seed point.
            prune: Forwarded to `VoronoiDecomposer`.

        Raises:
            ValueError: If the shapes of `points` and `structures` do not match,
                or if `structures` is not a 1D integer array.
            IndexError: If `initial` is not a valid point index.
        """
        structures = np.asarray(structures)
        if structures.ndim != 1:
            raise ValueError(f"Expected structures of shape (n, ), got {structures.shape}.")
        if structures.size and not np.issubdtype(structures.dtype, np.integer):
            raise ValueError(f"Structure ids must be integers, got {structures.dtype}.")

        points = np.asarray(points)
        if points.ndim != 2 or points.shape[0] != structures.shape[0]:
            raise ValueError(
                f"Got {structures.shape[0]} structure ids for points of shape {points.shape}."
            )

        self.structures = structures
        self.initial = operator.index(initial)
        self.voronoi = VoronoiDecomposer(points, self.initial, prune=prune)

        # Point indices of every structure, sorted by point index
        self._ids, inverse = np.unique(structures, return_inverse=True)
        order = np.argsort(inverse, kind="stable")
        bounds = np.cumsum(np.bincount(inverse, minlength=self._ids.size))[:-1]
        self._groups: list[npt.NDArray[np.int64]] = np.split(order.astype(np.int64), bounds)
        self._group_of: npt.NDArray[np.int64] = inverse.astype(np.int64).ravel()

        self._done = False

    @property
    def n_available(self) -> int:
        """Number of distinct structure ids."""
        return self._ids.size

    def members(self, structure: int) -> npt.NDArray[np.int64]:
        """Point indices carrying the structure id `structure`, in index order."""
        position = int(np.searchsorted(self._ids, structure))
        if position == self._ids.size or self._ids[position] != structure:
            raise IndexError(f"Unknown structure id {structure}.")
        return self._groups[position]

    def select(self, n_structures: int) -> SelectionResult:
        """
        Run the selection until `n_structures` structures are selected.

        Args:
            n_structures: How many structures to select, seed structure included.

        Raises:
            ValueError: If `n_structures` is not between 1 and the number of
                distinct structure ids.
            RuntimeError: If the selector was already used.

        Returns:
            The selected structures and the radius record.
        """
        n_structures = operator.index(n_structures)
        if n_structures < 1:
            raise ValueError(f"Need to select at least one structure, got {n_structures}.")
        if n_structures > self.n_available:
            raise ValueError(
                f"Can not select {n_structures} structures, "
                f"only {self.n_available} distinct structures are available."
            )
        if self._done:
            raise RuntimeError("This selector was already used, create a new one.")
        self._done = True

        voronoi = self.voronoi
        radius2: list[float] = [voronoi.cells()[-1].radius2]
        added: list[int] = [self.initial]
        picked: list[int] = [0]

        seed_structure = self.structures[self.initial]
        self._absorb(self.initial, radius2, added)
        selected = [seed_structure]
        logger.debug(
            f"Seed structure {seed_structure}: {len(added)} points, radius2={radius2[0]:.6g}."
        )

        while len(selected) < n_structures:
            cells = voronoi.cells()
            # A cell reduced to its center has nothing left to offer, even at radius2 = 0
            occupied = cells.farthest != cells.centers
            cell, radius = find_max(np.where(occupied, cells.radius2, -np.inf))
            point = int(cells.farthest[cell])

            voronoi.add_point(point)
            picked.append(len(added))
            radius2.append(radius)
            added.append(point)

            structure = self.structures[point]
            n_before = len(added)
            self._absorb(point, radius2, added)
            selected.append(structure)

            logger.debug(
                f"Selected structure {structure} ({len(selected)}/{n_structures}) "
                f"through point {point} of cell {cell}, radius2={radius:.6g}, "
                f"{len(added) - n_before} points absorbed."
            )

        logger.info(
            f"Selected {len(selected)} structures ({len(added)} points) out of "
            f"{self.n_available}; {voronoi.n_distance_evaluations} distance evaluations "
            f"for {voronoi.n_centers - 1} added centers."
        )

        return SelectionResult(
            structures=np.asarray(selected, dtype=self.structures.dtype),
            radius2=np.asarray(radius2, dtype=np.float64),
            points=np.asarray(added, dtype=np.int64),
            picked=np.asarray(picked, dtype=np.int64),
        )

    def _absorb(self, point: int, radius2: list[float], added: list[int]) -> None:
        """Add every other point of the structure of `point` to the decomposition."""
        for other in self._groups[self._group_of[point]]:
            if other == point:
                continue
            self.voronoi.add_point(other)
            radius2.append(self.voronoi.cells()[-1].radius2)
            added.append(int(other))
