"""Geometry providers."""

from .base import GeometryProvider, StaticProvider
from .fetch import DatasetFetcher
from .shapefile_provider import ShapefileProvider
from .tiger import DATASET_KINDS, dataset_location, tiger_provider

__all__ = [
    "DATASET_KINDS",
    "DatasetFetcher",
    "GeometryProvider",
    "ShapefileProvider",
    "StaticProvider",
    "dataset_location",
    "tiger_provider",
]
