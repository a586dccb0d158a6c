"""Join tabular data with geographic polygons for choropleth maps."""

from .crs import Projector, normalize_crs
from .errors import ConfigurationError
from .graticule import (
    choose_step,
    graticule,
    graticule_for_bbox,
    graticule_for_frame,
    grid,
    ticks_from_bbox,
)
from .mapify import expand_multipolygons, mapify, reproject_vertices
from .models import BoundingBox, Graticule, GridLabel, GridLine
from .providers import GeometryProvider, ShapefileProvider, StaticProvider, tiger_provider
from .rings import find_ring_boundaries, split_rings

__all__ = [
    "BoundingBox",
    "ConfigurationError",
    "GeometryProvider",
    "Graticule",
    "GridLabel",
    "GridLine",
    "Projector",
    "ShapefileProvider",
    "StaticProvider",
    "choose_step",
    "expand_multipolygons",
    "find_ring_boundaries",
    "graticule",
    "graticule_for_bbox",
    "graticule_for_frame",
    "grid",
    "mapify",
    "normalize_crs",
    "reproject_vertices",
    "split_rings",
    "ticks_from_bbox",
    "tiger_provider",
]
