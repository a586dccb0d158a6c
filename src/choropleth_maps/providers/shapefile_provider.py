"""Shapefile-backed geometry provider (pyshp)."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import BinaryIO

import pandas as pd
import shapefile

from ..crs import crs_from_prj
from ..errors import ConfigurationError
from .base import GeometryProvider, Polygon

logger = logging.getLogger(__name__)


class ShapefileProvider(GeometryProvider):
    """Polygons from a ``.shp`` and attribute records from its ``.dbf``.

    Supports two modes, like ``shapefile.Reader``:
    - File path: pass ``shp_path`` (the ``.dbf`` and ``.prj`` are auto-discovered)
    - File objects: pass ``shp_file``, ``shx_file``, ``dbf_file``, and optionally ``prj_wkt``

    ``projection`` overrides whatever the ``.prj`` declares. A missing ``.dbf``
    is tolerated with a warning and yields an empty record set.
    """

    def __init__(
        self,
        shp_path: str | Path | None = None,
        *,
        shp_file: BinaryIO | None = None,
        shx_file: BinaryIO | None = None,
        dbf_file: BinaryIO | None = None,
        prj_wkt: str | None = None,
        projection: str | None = None,
        name: str | None = None,
    ) -> None:
        if shp_path is not None:
            shp_path = Path(shp_path)
            base = shp_path.with_suffix("") if shp_path.suffix.lower() == ".shp" else shp_path
            self.name = name or base.name
            detected = crs_from_prj(_find_companion(base, ".prj"))
            open_reader = partial(shapefile.Reader, str(base))
        elif shp_file is not None:
            self.name = name or "upload"
            detected = crs_from_prj(prj_wkt)
            open_reader = partial(shapefile.Reader, shp=shp_file, shx=shx_file, dbf=dbf_file)
        else:
            raise ValueError("Provide either shp_path or shp_file")

        self._projection = projection or detected
        if self._projection is None:
            raise ConfigurationError(
                f"Cannot determine the projection of shapefile {self.name!r}; pass projection="
            )

        with open_reader() as sf:
            self._polygons = _read_polygons(sf)
            if sf.dbf is not None:
                self._records = _read_records(sf)
            else:
                logger.warning("No .dbf associated with shapefile %s", self.name)
                self._records = pd.DataFrame()

        logger.info(
            "Loaded %d shapes and %d records from %s", len(self._polygons), len(self._records), self.name
        )

    def polygons(self) -> list[Polygon]:
        return self._polygons

    def records(self) -> pd.DataFrame:
        return self._records

    def projection(self) -> str:
        return self._projection


def _find_companion(base: Path, ext: str) -> Path | None:
    """Locate a sidecar file such as ``.prj`` regardless of extension case."""
    for candidate in sorted(base.parent.glob(base.name + ".*")):
        if candidate.suffix.lower() == ext:
            return candidate
    return None


def _read_polygons(sf: shapefile.Reader) -> list[Polygon]:
    # All parts of a multipart shape stay concatenated; rings are recovered later.
    return [[[float(x), float(y)] for x, y, *_ in shape.points] for shape in sf.shapes()]


def _read_records(sf: shapefile.Reader) -> pd.DataFrame:
    fields = [f[0] for f in sf.fields[1:]]  # skip DeletionFlag
    return pd.DataFrame([list(rec) for rec in sf.records()], columns=fields)
