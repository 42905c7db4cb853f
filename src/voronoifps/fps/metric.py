from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numba as nb

if TYPE_CHECKING:
    import numpy.typing as npt


# No fastmath here: NaN must keep failing every comparison.
@nb.jit(cache=True)
def _squared_distance(
    a: npt.NDArray[np.float64],
    b: npt.NDArray[np.float64]
) -> float:
    """
    Squared Euclidean distance between two vectors of the same length.

    Args:
        a: (d, ) first vector.
        b: (d, ) second vector.

    Returns:
        sum((a - b)²)
    """
    d2 = 0.0
    for k in range(a.shape[0]):
        diff = a[k] - b[k]
        d2 += diff * diff
    return d2


@nb.jit(cache=True)
def squared_distances_to(
    points: npt.NDArray[np.float64],
    indices: npt.NDArray[np.int64],
    target: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """
    Squared distances from a subset of points to a single target vector.

    Args:
        points: (n, d) point matrix.
        indices: (m, ) row indices into `points`.
        target: (d, ) vector.

    Returns:
        (m, ) array, entry i is the squared distance of `points[indices[i]]` to `target`.
    """
    out = np.empty(indices.shape[0], dtype=np.float64)
    for i in range(indices.shape[0]):
        out[i] = _squared_distance(points[indices[i]], target)
    return out


def pruning_factor(dimension: int) -> float:
    """
    Factor turning a center-to-center squared distance into a safe pruning bound.

    In exact arithmetic a point with ``dist2 <= D2 / 4`` can not be closer to
    the new center. Squared distances are computed with a relative error of
    about ``(d + 2) * eps``, so the bound is shrunk by a few times that error
    and no point near the bisector is skipped by rounding.

    Args:
        dimension: Number of coordinates of the points.

    Returns:
        Factor slightly below 1/4.
    """
    eps = np.finfo(np.float64).eps
    return 0.25 * (1.0 - 4.0 * (dimension + 2) * eps)


@nb.jit(cache=True, parallel=True)
def reassign_members(
    points: npt.NDArray[np.float64],
    members: npt.NDArray[np.int64],
    dist2: npt.NDArray[np.float64],
    center: npt.NDArray[np.float64],
    bound: float,
    prune: bool
) -> tuple[npt.NDArray[np.bool_], int]:
    """
    Move the members of one cell that are strictly closer to a new center.

    A member ``p`` with ``dist2[p] <= bound`` is skipped without computing its
    distance, where ``bound`` is a quarter of the squared distance between the
    cell's center and the new center. By the triangle inequality such a point
    can not be closer to the new center than to its current one. The caller
    computes `bound` with `pruning_factor` so that rounding never skips a
    point that a full scan would move.

    Each iteration only writes ``dist2[members[i]]`` and ``moved[i]``, so the
    loop is split across numba threads.

    Args:
        points: (n, d) point matrix.
        members: (m, ) point indices currently owned by the cell.
        dist2: (n, ) squared distance of every point to its owner, updated in-place.
        center: (d, ) coordinates of the new center.
        bound: Pruning threshold for this cell.
        prune: Apply the pruning threshold. Without it every member is checked.

    Returns:
        moved: (m, ) mask of the members now owned by the new center.
        evaluated: Number of distances actually computed.
    """
    m = members.shape[0]
    moved = np.zeros(m, dtype=np.bool_)
    evaluated = 0
    for i in nb.prange(m):
        p = members[i]
        if not prune or dist2[p] > bound:
            evaluated += 1
            d2 = _squared_distance(points[p], center)
            if d2 < dist2[p]:
                dist2[p] = d2
                moved[i] = True
    return moved, evaluated


def squared_distance(
    a: npt.ArrayLike,
    b: npt.ArrayLike
) -> float:
    """
    Squared Euclidean distance between two points.

    Args:
        a: Coordinates of the first point.
        b: Coordinates of the second point.

    Raises:
        ValueError: If the two points do not have the same dimension.

    Returns:
        Squared distance as a python float.
    """
    a = np.ascontiguousarray(a, dtype=np.float64).ravel()
    b = np.ascontiguousarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        raise ValueError(f"Dimension mismatch: {a.shape[0]} != {b.shape[0]}.")
    return float(_squared_distance(a, b))
