"""Pydantic data models for graticule overlays."""

from typing import Literal

from pydantic import BaseModel


class BoundingBox(BaseModel):
    """An axis-aligned extent in some CRS."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def bounds(self, dim: int) -> tuple[float, float]:
        """Return ``(low, high)`` for dimension 0 (x) or 1 (y)."""
        return (self.min_x, self.max_x) if dim == 0 else (self.min_y, self.max_y)

    def corners(self) -> list[tuple[float, float]]:
        return [
            (self.min_x, self.min_y),
            (self.max_x, self.min_y),
            (self.max_x, self.max_y),
            (self.min_x, self.max_y),
        ]


class GridLine(BaseModel):
    """A meridian or parallel, as a polyline in the destination CRS."""

    orientation: Literal["meridian", "parallel"]
    value: float
    points: list[tuple[float, float]]


class GridLabel(BaseModel):
    """A tick label anchored in the destination CRS."""

    x: float
    y: float
    text: str
    ha: Literal["left", "center"]
    va: Literal["top", "center"]


class Graticule(BaseModel):
    """Grid lines and optional labels ready to draw under a choropleth."""

    src_crs: str
    dst_crs: str
    lines: list[GridLine]
    labels: list[GridLabel] = []

    @property
    def meridians(self) -> list[GridLine]:
        return [line for line in self.lines if line.orientation == "meridian"]

    @property
    def parallels(self) -> list[GridLine]:
        return [line for line in self.lines if line.orientation == "parallel"]
