"""CRS identifier normalization and the pyproj-backed projector."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Sequence

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CRSLike = int | str
Point = Sequence[float]

AUTHORITIES = ("EPSG", "ESRI")


def normalize_crs(identifier: CRSLike) -> str:
    """Return a canonical CRS identifier string.

    Accepted forms:
    - ``3857`` or ``"3857"``: looked up in the EPSG registry, then ESRI
    - ``"epsg:3857"`` / ``"esri:102003"`` (any case)
    - a raw definition (``"+proj=merc ..."``, WKT), returned unchanged

    Raises ``ConfigurationError`` when the identifier cannot be resolved.
    """
    if isinstance(identifier, bool) or not isinstance(identifier, (int, str)):
        raise ConfigurationError(f"Unrecognized CRS identifier: {identifier!r}")

    text = str(identifier).strip()
    if not text:
        raise ConfigurationError("Empty CRS identifier")

    prefix, sep, code = text.partition(":")
    if sep and prefix.upper() in AUTHORITIES and code.strip().isdigit():
        auth = prefix.upper()
        if _has_code(auth, code.strip()):
            return f"{auth}:{int(code)}"
        raise ConfigurationError(f"Unrecognized CRS identifier: {identifier!r}")

    if text.isdigit():
        for auth in AUTHORITIES:
            if _has_code(auth, text):
                return f"{auth}:{int(text)}"
        raise ConfigurationError(f"Unrecognized CRS identifier: {identifier!r}")

    try:
        CRS.from_user_input(text)
    except CRSError as exc:
        raise ConfigurationError(f"Unrecognized CRS identifier: {identifier!r}") from exc
    return text


def _has_code(auth: str, code: str) -> bool:
    try:
        CRS.from_authority(auth, code)
    except CRSError:
        return False
    return True


def crs_from_prj(prj_source: str | Path | None) -> str | None:
    """Detect the CRS of a ``.prj`` WKT string or file.

    Returns ``"EPSG:<n>"`` when the WKT matches a registry entry, the raw WKT
    when it parses but has no EPSG equivalent, or None on failure.
    """
    if prj_source is None:
        return None

    wkt = prj_source if isinstance(prj_source, str) else ""
    if isinstance(prj_source, Path):
        if not prj_source.exists():
            return None
        wkt = prj_source.read_text()

    if not wkt.strip():
        return None

    try:
        crs = CRS.from_wkt(wkt)
    except CRSError:
        logger.warning("Could not parse projection WKT")
        return None

    epsg = crs.to_epsg()
    return f"EPSG:{epsg}" if epsg is not None else wkt


@lru_cache(maxsize=32)
def _transformer(src: str, dst: str) -> Transformer:
    logger.debug("Building transformer %s -> %s", src, dst)
    return Transformer.from_crs(CRS.from_user_input(src), CRS.from_user_input(dst), always_xy=True)


class Projector:
    """Transforms points between coordinate reference systems.

    Points are ``(x, y)`` pairs in the CRS's easting/northing (or lon/lat) order.
    """

    def transform(self, src: CRSLike, dst: CRSLike, point: Point) -> tuple[float, float]:
        x, y = self._get(src, dst).transform(point[0], point[1])
        return float(x), float(y)

    def transform_many(
        self, src: CRSLike, dst: CRSLike, points: Iterable[Point]
    ) -> list[tuple[float, float]]:
        points = list(points)
        if not points:
            return []
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        txs, tys = self._get(src, dst).transform(xs, ys)
        return [(float(x), float(y)) for x, y in zip(txs, tys)]

    def _get(self, src: CRSLike, dst: CRSLike) -> Transformer:
        return _transformer(normalize_crs(src), normalize_crs(dst))
