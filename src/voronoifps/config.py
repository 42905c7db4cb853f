"""
Configuration & Defaults
========================
This module serves as the central registry for default values and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (seed index, log format, ...)
   scattered throughout the code.
2. Environment: It reads the few settings that can be changed without
   touching the command line (log level, number of threads).

Exports:
    DEFAULT_INITIAL_INDEX (int): Seed point used when no other is given.
    SelectionConfig: Settings of a single `select-structures` run.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from importlib.metadata import version, PackageNotFoundError
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import argparse

try:
    APP_VERSION = version("voronoifps")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


# Global Constants
DEFAULT_INITIAL_INDEX: int = 0

LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: str = '%H:%M:%S'

LOG_LEVEL_ENV: str = "VORONOIFPS_LOG_LEVEL"
NUM_THREADS_ENV: str = "VORONOIFPS_NUM_THREADS"


def default_log_level() -> int:
    """
    Log level from the environment, INFO when unset.

    Raises:
        ValueError: If the variable holds an unknown level name.
    """
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level in {LOG_LEVEL_ENV}: '{name}'.")
    return level


def num_threads() -> Optional[int]:
    """Maximal number of numba worker threads, None to keep numba's default."""
    value = os.environ.get(NUM_THREADS_ENV)
    if not value:
        return None
    n = int(value)
    if n < 1:
        raise ValueError(f"{NUM_THREADS_ENV} must be a positive integer, got {n}.")
    return n


@dataclass
class SelectionConfig:
    """Settings of one selection run, usually built from the command line."""
    points_path: str
    structures_path: str
    n_structures: int
    output_path: str
    radius_path: str
    initial: int = DEFAULT_INITIAL_INDEX
    points_output_path: Optional[str] = None
    plot_path: Optional[str] = None
    prune: bool = True
    log_level: int = logging.INFO
    log_file: Optional[str] = None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> SelectionConfig:
        return cls(
            points_path=args.points,
            structures_path=args.structures,
            n_structures=args.n_structures,
            output_path=args.output,
            radius_path=args.radius,
            initial=args.initial,
            points_output_path=args.output_points,
            plot_path=args.plot,
            prune=not args.no_prune,
            log_level=logging.getLevelName(args.log_level) if args.log_level else default_log_level(),
            log_file=args.log_file,
        )
