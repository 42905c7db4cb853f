from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass
class Dataset:
    """
    Point matrix and structure ids, aligned by row.

    Attributes:
        points: (n, d) float64 coordinates, row i = point i.
        structures: (n, ) integer structure id of every point.
    """
    points: npt.NDArray[np.float64]
    structures: npt.NDArray[np.integer]

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=np.float64)
        self.structures = np.asarray(self.structures)

        if self.points.ndim != 2:
            raise ValueError(f"Expected points of shape (n, d), got {self.points.shape}.")
        if self.structures.ndim != 1:
            raise ValueError(f"Expected structures of shape (n, ), got {self.structures.shape}.")
        if not np.issubdtype(self.structures.dtype, np.integer):
            raise ValueError(f"Structure ids must be integers, got {self.structures.dtype}.")
        if self.points.shape[0] != self.structures.shape[0]:
            raise ValueError(
                f"Mismatched lengths: {self.points.shape[0]} points "
                f"but {self.structures.shape[0]} structure ids."
            )

    @property
    def n_points(self) -> int:
        return self.points.shape[0]

    @property
    def dimension(self) -> int:
        return self.points.shape[1]

    @property
    def n_structures(self) -> int:
        """Number of distinct structure ids."""
        return np.unique(self.structures).size
