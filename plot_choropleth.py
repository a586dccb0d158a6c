"""Render a choropleth of a few US states with a graticule underneath.

This script uses the choropleth_maps library for the join, ring splitting,
reprojection and grid, and matplotlib for drawing.
"""

from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib import colormaps
from matplotlib.colors import Normalize
from matplotlib.patches import Polygon as PolygonPatch

from choropleth_maps import graticule_for_frame, mapify, tiger_provider
from choropleth_maps.config import setup_logging

OUTPUT_PLOT = Path(__file__).parent / "choropleth.png"

STATES = pd.DataFrame(
    {
        "NAME": ["Arkansas", "Florida", "Mississippi", "Alabama", "Louisiana", "Tennessee", "Georgia", "South Carolina"],
        "feature": [8.7, 13.2, 36.7, 30.0, 25.6, 23.7, 24.6, 14.6],
    }
)


def plot_choropleth(frame, ax, group="NAME", color="feature", cmap="viridis", fill=True):
    """Draw each group's ring as a closed polygon, preserving point order."""
    norm = Normalize(frame[color].min(), frame[color].max())
    colors = colormaps[cmap]
    for _, ring in frame.groupby(group, sort=False):
        xy = ring[["CM_X", "CM_Y"]].to_numpy()
        face = colors(norm(ring[color].iloc[0])) if fill else "none"
        ax.add_patch(PolygonPatch(xy, closed=True, facecolor=face, edgecolor="white", linewidth=0.4, zorder=2))
    ax.set_aspect("equal")
    ax.autoscale_view()
    return plt.cm.ScalarMappable(norm=norm, cmap=colors)


def plot_graticule(grid, ax):
    """Draw grid lines and labels behind the map."""
    for line in grid.lines:
        xs, ys = zip(*line.points)
        ax.plot(xs, ys, color="gray", linewidth=0.3, linestyle="--", zorder=1)
    for label in grid.labels:
        ax.text(label.x, label.y, label.text, ha=label.ha, va=label.va, fontsize=7, color="gray", zorder=1)


def main():
    setup_logging()
    provider = tiger_provider("STATESUMMARY", resolution="20m")
    frame = mapify(STATES, provider, key="NAME", projection=3857)
    print(f"Vertices: {len(frame):,}  Rings: {frame['NAME'].nunique()}")

    fig, ax = plt.subplots(figsize=(10, 8))
    plot_graticule(graticule_for_frame(frame), ax)
    mappable = plot_choropleth(frame, ax)
    fig.colorbar(mappable, ax=ax, shrink=0.6, label="feature")
    ax.set_xticks([])
    ax.set_yticks([])
    fig.tight_layout()
    fig.savefig(OUTPUT_PLOT, dpi=150)
    print(f"Plot saved: {OUTPUT_PLOT}")


if __name__ == "__main__":
    main()
