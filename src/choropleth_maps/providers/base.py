"""Geometry provider interface and an in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

import pandas as pd

Polygon = list[list[float]]


class GeometryProvider(ABC):
    """A named geographic dataset: polygons plus one attribute record per polygon.

    ``polygons()`` and ``records()`` must be positionally aligned: the i-th
    record describes the i-th polygon.
    """

    @abstractmethod
    def polygons(self) -> list[Polygon]:
        """Return one concatenated point sequence per entity."""

    @abstractmethod
    def records(self) -> pd.DataFrame:
        """Return the attribute records, one row per entity."""

    @abstractmethod
    def projection(self) -> str:
        """Return the native CRS identifier of the polygons."""

    def names(self) -> list[str]:
        return list(self.records().columns)

    def describe_names(self) -> dict[str, str]:
        return {}


class StaticProvider(GeometryProvider):
    """Provider over geometry and records already held in memory."""

    def __init__(
        self,
        polygons: Sequence[Sequence[Sequence[float]]],
        records: pd.DataFrame | Mapping[str, Sequence[Any]],
        projection: str,
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self._polygons = [[list(pt) for pt in polygon] for polygon in polygons]
        self._records = pd.DataFrame(records)
        self._projection = projection
        self._descriptions = dict(descriptions or {})

    def polygons(self) -> list[Polygon]:
        return self._polygons

    def records(self) -> pd.DataFrame:
        return self._records

    def projection(self) -> str:
        return self._projection

    def describe_names(self) -> dict[str, str]:
        return dict(self._descriptions)
