from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from voronoifps.fps.selector import SelectionResult


def plot_radius_history(result: SelectionResult, filepath: str) -> None:
    """
    Plot the Voronoi radius recorded for every added point and save the figure.

    Points picked by farthest point sampling are highlighted; the others were
    absorbed together with their structure. Zero radii are not drawn on the
    logarithmic axis.
    """
    # Optional dependency, only needed for this plot
    from matplotlib.figure import Figure

    radius = np.sqrt(result.radius2)
    steps = np.arange(radius.size)
    positive = radius > 0.0
    picked = np.zeros(radius.size, dtype=bool)
    picked[result.picked] = True

    fig = Figure(figsize=(10, 5))
    ax = fig.subplots()
    ax.plot(steps[positive], radius[positive], color="grey", linewidth=0.8, label="Added points")
    ax.plot(
        steps[picked & positive], radius[picked & positive], "o",
        markersize=3, label="Selected points"
    )

    ax.set_yscale("log")
    ax.set_title(f"Voronoi radius during the selection of {result.n_structures} structures")
    ax.set_xlabel("Number of added points")
    ax.set_ylabel("Radius")
    ax.grid(True)
    ax.legend()

    fig.savefig(filepath, dpi=150, bbox_inches="tight")
