"""Graticule (reference grid) generation.

Grid lines are laid out in a geographic source CRS, usually lon/lat degrees,
then every vertex is carried into the map's CRS so that lines bend the way
the projection bends them.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

import pandas as pd

from .crs import CRSLike, Projector, normalize_crs
from .errors import ConfigurationError
from .mapify import PROJ_COL, X_COL, Y_COL
from .models import BoundingBox, Graticule, GridLabel, GridLine

STEPS = (0.1, 0.2, 0.5, 1, 2, 5, 10, 15, 20, 30)
MAX_LINES = 12
AXIS_LIMITS = (180.0, 90.0)  # longitude, latitude


def choose_step(extent: float) -> float:
    """Return the smallest ladder step giving at most ``MAX_LINES`` intervals."""
    for step in STEPS:
        if extent / step <= MAX_LINES:
            return step
    return STEPS[-1]


def _clamp(x: float, bmax: float) -> float:
    return math.copysign(bmax, x) if abs(x) > bmax else x


def _snap(x: float, step: float, func: Callable[[float], int]) -> float:
    # Round first so 30 / 0.1 does not floor to 299.
    return round(step * func(round(x / step, 9)), 10)


def grid_on_dim(bbox: BoundingBox, dim: int, bmax: float) -> list[float]:
    """Tick positions along one axis of ``bbox``.

    The extent is widened by half around its centre so the grid overhangs the
    data, clamped to ``bmax`` and snapped outward to multiples of the step.
    """
    low, high = bbox.bounds(dim)
    extent = high - low
    step = choose_step(extent)

    center = (low + high) / 2
    start = _snap(_clamp(center - 1.5 * extent / 2, bmax), step, math.floor)
    stop = _snap(_clamp(center + 1.5 * extent / 2, bmax), step, math.ceil)

    count = int(round((stop - start) / step))
    ticks = [round(start + i * step, 10) for i in range(count + 1)]
    return [t for t in ticks if abs(t) <= bmax]


def ticks_from_bbox(bbox: BoundingBox) -> tuple[list[float], list[float]]:
    """Return ``(longitudes, latitudes)`` covering a geographic bounding box."""
    return grid_on_dim(bbox, 0, AXIS_LIMITS[0]), grid_on_dim(bbox, 1, AXIS_LIMITS[1])


def frame_bbox(df: pd.DataFrame) -> BoundingBox:
    """Extent of a mapified frame's ``CM_X``/``CM_Y`` columns."""
    if df.empty:
        raise ValueError("Cannot compute the bounding box of an empty frame")
    return BoundingBox(
        min_x=float(df[X_COL].min()),
        max_x=float(df[X_COL].max()),
        min_y=float(df[Y_COL].min()),
        max_y=float(df[Y_COL].max()),
    )


def map_bbox(
    bbox: BoundingBox, src: CRSLike, dst: CRSLike, projector: Projector | None = None
) -> BoundingBox:
    """Carry the four corners of ``bbox`` into ``dst`` and take their extent."""
    projector = projector or Projector()
    pts = projector.transform_many(src, dst, bbox.corners())
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return BoundingBox(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))


def graticule(
    longs: Sequence[float],
    lats: Sequence[float],
    src_crs: CRSLike = "epsg:4326",
    dst_crs: CRSLike = "epsg:3857",
    show_labels: bool = True,
    lat_of_long_labels: float | None = None,
    long_of_lat_labels: float | None = None,
    projector: Projector | None = None,
) -> Graticule:
    """Build grid lines through every ``longs`` x ``lats`` intersection.

    Longitude labels sit on the parallel at ``lat_of_long_labels`` (default:
    the southernmost), latitude labels on the meridian at ``long_of_lat_labels``
    (default: the westernmost).
    """
    projector = projector or Projector()
    src = normalize_crs(src_crs)
    dst = normalize_crs(dst_crs)
    xs = sorted(longs)
    ys = sorted(lats, reverse=True)

    lines = [
        GridLine(
            orientation="meridian",
            value=x,
            points=projector.transform_many(src, dst, [(x, y) for y in ys]),
        )
        for x in xs
    ]
    lines += [
        GridLine(
            orientation="parallel",
            value=y,
            points=projector.transform_many(src, dst, [(x, y) for x in xs]),
        )
        for y in ys
    ]

    labels: list[GridLabel] = []
    if show_labels and xs and ys:
        label_x = xs[0] if long_of_lat_labels is None else long_of_lat_labels
        label_y = ys[-1] if lat_of_long_labels is None else lat_of_long_labels
        for x in xs:
            px, py = projector.transform(src, dst, (x, label_y))
            labels.append(GridLabel(x=px, y=py, text=_format_tick(x), ha="center", va="top"))
        for y in ys:
            px, py = projector.transform(src, dst, (label_x, y))
            labels.append(GridLabel(x=px, y=py, text=_format_tick(y), ha="left", va="center"))

    return Graticule(src_crs=src, dst_crs=dst, lines=lines, labels=labels)


def graticule_for_bbox(
    bbox: BoundingBox,
    src_crs: CRSLike = "epsg:4326",
    dst_crs: CRSLike = "epsg:3857",
    show_labels: bool = True,
    projector: Projector | None = None,
) -> Graticule:
    """Graticule covering a bounding box given in ``src_crs`` units."""
    lons, lats = ticks_from_bbox(bbox)
    return graticule(
        lons, lats, src_crs=src_crs, dst_crs=dst_crs, show_labels=show_labels, projector=projector
    )


def graticule_for_frame(
    df: pd.DataFrame,
    src_crs: CRSLike = "epsg:4326",
    projector: Projector | None = None,
    **options,
) -> Graticule:
    """Graticule sized to a mapified frame.

    ``src_crs`` is the CRS of the grid, not of the frame; the frame's CRS is
    read from its ``CM_P`` column.
    """
    if PROJ_COL not in df.columns:
        raise ConfigurationError(f"Frame has no {PROJ_COL} column; mapify it with with_projection=True")
    bbox = frame_bbox(df)
    dst = df[PROJ_COL].iloc[0]
    projector = projector or Projector()

    lons, lats = ticks_from_bbox(map_bbox(bbox, dst, src_crs, projector))
    # Roughly the left and bottom edges of the data, since the ticks overhang it.
    options.setdefault("long_of_lat_labels", lons[max(len(lons) // 4 - 1, 0)])
    options.setdefault("lat_of_long_labels", lats[max(math.ceil(len(lats) / 4) - 1, 0)])
    return graticule(lons, lats, src_crs=src_crs, dst_crs=dst, projector=projector, **options)


def grid(
    df: pd.DataFrame, grid_crs: CRSLike, projector: Projector | None = None
) -> tuple[list[list[tuple[float, float]]], list[list[tuple[float, float]]]]:
    """Return the grid intersections for a frame, unprojected and projected.

    Both are row-major matrices with latitudes descending down the rows.
    """
    if PROJ_COL not in df.columns:
        raise ConfigurationError(f"Frame has no {PROJ_COL} column; mapify it with with_projection=True")
    bbox = frame_bbox(df)
    data_crs = df[PROJ_COL].iloc[0]
    projector = projector or Projector()

    xs, ys = ticks_from_bbox(map_bbox(bbox, data_crs, grid_crs, projector))
    unprojected = [[(x, y) for x in xs] for y in reversed(ys)]
    projected = [projector.transform_many(grid_crs, data_crs, row) for row in unprojected]
    return unprojected, projected


def _format_tick(value: float) -> str:
    return f"{value:g}"
