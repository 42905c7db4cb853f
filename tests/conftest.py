from __future__ import annotations

import logging

import numpy as np
import pytest


@pytest.fixture
def line_points() -> np.ndarray:
    """Five points on a line, grouped in three structures by `line_structures`."""
    return np.array([[0.0], [1.0], [2.0], [10.0], [11.0]])


@pytest.fixture
def line_structures() -> np.ndarray:
    return np.array([0, 0, 1, 2, 2], dtype=np.int32)


@pytest.fixture
def clustered_points() -> np.ndarray:
    """300 points in 4D around 6 well separated cluster centers."""
    rng = np.random.default_rng(42)
    centers = rng.uniform(-20.0, 20.0, size=(6, 4))
    labels = rng.integers(0, 6, size=300)
    return centers[labels] + rng.normal(scale=0.5, size=(300, 4))


@pytest.fixture
def clustered_structures() -> np.ndarray:
    """Structures of 1 to 5 consecutive points covering `clustered_points`."""
    rng = np.random.default_rng(7)
    sizes = rng.integers(1, 6, size=300)
    return np.repeat(np.arange(300), sizes)[:300]


def brute_force_assignment(points: np.ndarray, centers: list[int]) -> tuple[np.ndarray, np.ndarray]:
    """Nearest center (earliest on ties) and squared distance, from scratch."""
    diff = points[:, None, :] - points[None, centers, :]
    d2 = np.einsum("ncd,ncd->nc", diff, diff)
    nearest = np.argmin(d2, axis=1)
    return np.asarray(centers)[nearest], d2[np.arange(points.shape[0]), nearest]


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop the handlers installed by `setup_logging` once a test is done."""
    yield
    logger = logging.getLogger("voronoifps")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
