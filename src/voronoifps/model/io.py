"""
Input/Output Manager (NumPy .npy)
Handles loading the dataset and saving the selection results.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, TYPE_CHECKING

import numpy as np

from voronoifps.model.dataset import Dataset

if TYPE_CHECKING:
    import numpy.typing as npt
    from voronoifps.fps.selector import SelectionResult

# Get module logger
logger = logging.getLogger(__name__)


class IOManager:

    @staticmethod
    def load_array(filepath: str) -> npt.NDArray:
        """
        Load a single array from a .npy file.

        Pickled object arrays are refused.
        """
        if not os.path.exists(filepath):
            msg = f"File '{filepath}' does not exist."
            logger.error(msg)
            raise FileNotFoundError(msg)

        try:
            array = np.load(filepath, allow_pickle=False)
        except Exception as e:
            logger.exception(f"Failed to read array from '{filepath}': {e}")
            raise e

        if not isinstance(array, np.ndarray):
            msg = f"File '{filepath}' does not contain a single array."
            logger.error(msg)
            raise ValueError(msg)

        logger.debug(f"Loaded {array.dtype} array of shape {array.shape} from '{filepath}'.")
        return array

    @staticmethod
    def load_dataset(points_path: str, structures_path: str) -> Dataset:
        logger.info(f"Loading points from: {points_path}")
        points = IOManager.load_array(points_path)
        logger.info(f"Loading structures from: {structures_path}")
        structures = IOManager.load_array(structures_path)

        try:
            dataset = Dataset(points=points, structures=structures)
        except ValueError as e:
            logger.error(f"Invalid dataset: {e}")
            raise e

        logger.info(
            f"Dataset: {dataset.n_points} points in {dataset.dimension}D, "
            f"{dataset.n_structures} structures."
        )
        return dataset

    @staticmethod
    def save_array(filepath: str, array: npt.ArrayLike) -> None:
        try:
            # Through a file object, np.save would otherwise append '.npy'
            with open(filepath, "wb") as f:
                np.save(f, np.asarray(array), allow_pickle=False)
        except Exception as e:
            logger.exception(f"Failed to write array to '{filepath}': {e}")
            raise e
        logger.debug(f"Saved array to '{filepath}'.")

    @staticmethod
    def save_selection(
        result: SelectionResult,
        output_path: str,
        radius_path: str,
        points_path: Optional[str] = None,
    ) -> None:
        """
        Save the selected structure ids and the radius record.

        Args:
            result: Output of the selection.
            output_path: Where to write the selected structure ids.
            radius_path: Where to write the squared radius of every added point.
            points_path: Optional, where to write the added point indices.
        """
        IOManager.save_array(output_path, result.structures)
        logger.info(f"Selected structures saved to: {output_path}")

        IOManager.save_array(radius_path, result.radius2)
        logger.info(f"Radius record saved to: {radius_path}")

        if points_path:
            IOManager.save_array(points_path, result.points)
            logger.info(f"Selected points saved to: {points_path}")
