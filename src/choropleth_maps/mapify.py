"""Join tabular data with provider geometry and flatten it into vertex rows."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from .crs import CRSLike, Projector, normalize_crs
from .errors import ConfigurationError
from .providers.base import GeometryProvider
from .rings import split_rings

logger = logging.getLogger(__name__)

POLYGON_COL = "CM_POLYGONS"
X_COL = "CM_X"
Y_COL = "CM_Y"
PROJ_COL = "CM_P"
ORIG_KEY_COL = "CM_ORIG_KEY"


def mapify(
    df: pd.DataFrame,
    provider: GeometryProvider,
    key: str = "GEOID",
    plotgroup: str | None = None,
    projection: CRSLike = 3857,
    keepcols: Iterable[str] = (),
    *,
    with_projection: bool = True,
    projector: Projector | None = None,
) -> pd.DataFrame:
    """Join ``df`` with the ``provider``'s polygons and return one row per vertex.

    ``key`` must exist in both ``df`` and the provider's records. ``plotgroup``
    is the provider column that tells shapes apart and only needs to be given
    when it differs from ``key``. ``projection`` is the target CRS (EPSG code,
    ``"epsg:<n>"``, ``"esri:<n>"`` or a raw definition). ``keepcols`` names
    extra provider columns to carry through; all others are dropped.

    The result holds ``CM_X``/``CM_Y`` (and ``CM_P`` when ``with_projection``),
    the re-keyed ``plotgroup`` column (``"<value>_<ring>"``), ``CM_ORIG_KEY``
    and the remaining joined columns. Rows of ``df`` without geometry are
    dropped.

    Example:
        >>> df = pd.DataFrame({"NAME": ["Alabama", "Mississippi"], "POP": [4849000, 2994000]})
        >>> frame = mapify(df, tiger_provider("STATESUMMARY"), key="NAME")
    """
    plotgroup = plotgroup or key
    if key not in df.columns:
        raise ConfigurationError(f"Join key {key!r} is not a column of the input table")

    src = normalize_crs(provider.projection())
    dst = normalize_crs(projection)

    pdata = provider_frame(provider)
    for column, role in ((key, "Join key"), (plotgroup, "Plot group key")):
        if column not in pdata.columns:
            raise ConfigurationError(f"{role} {column!r} is not a column of the provider records")

    pdata = prune_columns(pdata, [key, plotgroup, *keepcols])
    joined = join_geometry(df, pdata, key, plotgroup)
    expanded = expand_multipolygons(joined, plotgroup)
    result = reproject_vertices(
        expanded, src, dst, projector=projector, with_projection=with_projection
    )
    logger.debug(
        "mapify: %d joined rows, %d rings, %d vertices", len(joined), len(expanded), len(result)
    )
    return result


def provider_frame(provider: GeometryProvider) -> pd.DataFrame:
    """Pair the provider's records with its polygons, position by position."""
    polygons = list(provider.polygons())
    records = pd.DataFrame(provider.records()).reset_index(drop=True)
    if len(records.columns) == 0:
        records = pd.DataFrame(index=pd.RangeIndex(len(polygons)))
    if len(records) != len(polygons):
        raise ValueError(
            f"Provider returned {len(records)} records for {len(polygons)} polygons"
        )
    frame = records.copy()
    frame[POLYGON_COL] = _object_column(polygons)
    return frame


def prune_columns(frame: pd.DataFrame, keep: Sequence[str]) -> pd.DataFrame:
    """Drop every column except ``keep`` and the polygon payload."""
    wanted = set(keep) | {POLYGON_COL}
    missing = [c for c in dict.fromkeys(keep) if c not in frame.columns]
    if missing:
        logger.warning("Ignoring columns missing from provider records: %s", missing)
    return frame[[c for c in frame.columns if c in wanted]]


def join_geometry(df: pd.DataFrame, pdata: pd.DataFrame, key: str, plotgroup: str) -> pd.DataFrame:
    """Inner-join ``df`` to the provider frame on ``key``."""
    if plotgroup != key and plotgroup in df.columns:
        # The provider's group column drives re-keying.
        df = df.drop(columns=[plotgroup])

    left, right = df[key], pdata[key]
    if not left.empty and not right.empty and is_numeric_dtype(left) != is_numeric_dtype(right):
        raise ConfigurationError(
            f"Join key {key!r} has dtype {left.dtype} in the input table "
            f"but {right.dtype} in the provider records"
        )

    unmatched = int((~df[key].isin(pdata[key])).sum())
    if unmatched:
        logger.info("%d input rows have no geometry for key %r and were dropped", unmatched, key)

    return df.merge(pdata, on=key, how="inner", suffixes=("", "_provider"))


def expand_multipolygons(frame: pd.DataFrame, key: str) -> pd.DataFrame:
    """Split each row's polygon into rings, one output row per ring.

    The ``key`` column becomes ``"<value>_<n>"`` with ``n`` counting rings
    from 1 in scan order; the original value is kept as text in ``CM_ORIG_KEY``.
    """
    others = [c for c in frame.columns if c not in (key, POLYGON_COL)]
    columns = [key, ORIG_KEY_COL, *others, POLYGON_COL]

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict("records"):
        original = str(record[key])
        for ordinal, ring in enumerate(split_rings(record[POLYGON_COL]), start=1):
            row = {c: record[c] for c in others}
            row[key] = f"{original}_{ordinal}"
            row[ORIG_KEY_COL] = original
            row[POLYGON_COL] = ring
            rows.append(row)

    if not rows:
        return pd.DataFrame(columns=columns)
    out = pd.DataFrame({c: [row[c] for row in rows] for c in columns if c != POLYGON_COL})
    out[POLYGON_COL] = _object_column([row[POLYGON_COL] for row in rows])
    return out[columns]


def reproject_vertices(
    frame: pd.DataFrame,
    src: CRSLike,
    dst: CRSLike,
    *,
    projector: Projector | None = None,
    with_projection: bool = True,
) -> pd.DataFrame:
    """Emit one row per polygon vertex with ``CM_X``/``CM_Y`` in ``dst``.

    All non-polygon columns are repeated for each vertex. ``CM_P`` holds the
    normalized ``dst`` identifier when ``with_projection`` is set.
    """
    projector = projector or Projector()
    src = normalize_crs(src)
    dst = normalize_crs(dst)

    polygons = frame[POLYGON_COL].tolist()
    counts = [len(p) for p in polygons]
    projected = projector.transform_many(src, dst, [pt for p in polygons for pt in p])

    base = frame.drop(columns=[POLYGON_COL])
    positions = np.repeat(np.arange(len(base)), np.asarray(counts, dtype=int))
    out = base.iloc[positions].reset_index(drop=True)
    out.insert(0, X_COL, np.array([p[0] for p in projected], dtype=float))
    out.insert(1, Y_COL, np.array([p[1] for p in projected], dtype=float))
    if with_projection:
        out.insert(2, PROJ_COL, dst)
    return out


def _object_column(values: Sequence[Any]) -> np.ndarray:
    arr = np.empty(len(values), dtype=object)
    for i, value in enumerate(values):
        arr[i] = value
    return arr
