"""
Command Line Tool
=================
`select-structures`: select training structures from a dataset using a
Voronoi realization of farthest point sampling.

Why is this file needed?
------------------------
It acts as the orchestrator. It:
1. Parses the command line into a `SelectionConfig`.
2. Sets up logging and the numba thread pool.
3. Loads the dataset, runs the selection and saves the results.

All environments from a structure are added as soon as any environment of
this structure is selected.
"""
from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import numba as nb

from voronoifps.config import (
    APP_VERSION, DEFAULT_INITIAL_INDEX, LOG_LEVEL_ENV, SelectionConfig, num_threads
)
from voronoifps.fps.selector import SelectionResult, StructureAwareSelector
from voronoifps.logging_config import setup_logging
from voronoifps.model.dataset import Dataset
from voronoifps.model.io import IOManager
from voronoifps.utils import timer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="select-structures",
        description="Select training points from a dataset using a Voronoi realization of FPS. "
                    "All environments from a structure are added when any environment in "
                    "this structure is selected.",
    )
    parser.add_argument("--points", required=True, metavar="points.npy", help="Array of points, one row per environment")
    parser.add_argument("--structures", required=True, metavar="structures.npy", help="Array of structure indexes")
    parser.add_argument("-n", dest="n_structures", type=int, required=True, help="How many structures to select")
    parser.add_argument("-o", "--output", required=True, metavar="output.npy", help="Where to output selected structures indexes")
    parser.add_argument("--radius", required=True, metavar="radius.npy", help="Where to output Voronoi radii of selected points")
    parser.add_argument("--output-points", default=None, metavar="points.npy", help="Where to output the indexes of all added points")
    parser.add_argument("--initial", type=int, default=DEFAULT_INITIAL_INDEX, help="Index of the first selected point")
    parser.add_argument("--no-prune", action="store_true", help="Disable the triangle inequality pruning (slow, for checks)")
    parser.add_argument("--plot", default=None, metavar="radius.png", help="Save a plot of the radius history (needs matplotlib)")
    parser.add_argument(
        "--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or INFO)"
    )
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


@timer
def run_selection(dataset: Dataset, config: SelectionConfig) -> SelectionResult:
    selector = StructureAwareSelector(
        points=dataset.points,
        structures=dataset.structures,
        initial=config.initial,
        prune=config.prune,
    )
    return selector.select(config.n_structures)


def run(config: SelectionConfig) -> SelectionResult:
    """Load the inputs, select the structures and save the outputs."""
    threads = num_threads()
    if threads is not None:
        nb.set_num_threads(min(threads, nb.config.NUMBA_NUM_THREADS))
        logger.debug(f"Using {nb.get_num_threads()} numba threads.")

    dataset = IOManager.load_dataset(config.points_path, config.structures_path)
    result = run_selection(dataset, config)

    IOManager.save_selection(
        result,
        output_path=config.output_path,
        radius_path=config.radius_path,
        points_path=config.points_output_path,
    )

    if config.plot_path:
        from voronoifps.plotting import plot_radius_history
        plot_radius_history(result, config.plot_path)
        logger.info(f"Radius plot saved to: {config.plot_path}")

    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = SelectionConfig.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(level=config.log_level, log_file=config.log_file)
    logger.info(f"select-structures {APP_VERSION}")

    try:
        run(config)
    except (ValueError, IndexError, FloatingPointError, OSError) as e:
        logger.error(f"Selection failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
