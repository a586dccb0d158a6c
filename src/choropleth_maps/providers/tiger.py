"""US Census TIGER/Line and cartographic boundary datasets.

Every dataset family is described by one entry in ``DATASET_KINDS``; a single
constructor turns a kind plus its parameters into a cached, loaded provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..config import load_settings
from ..errors import ConfigurationError
from .fetch import DatasetFetcher
from .shapefile_provider import ShapefileProvider

TIGER_PROJECTION = "epsg:4269"  # NAD83
MIN_YEAR = 2010
RESOLUTIONS = ("500k", "5m", "20m")

TIGER_URL = "https://www2.census.gov/geo/tiger/TIGER{year}/{kind}/{basename}.zip"
SUMMARY_URL = "https://www2.census.gov/geo/tiger/GENZ{year}/shp/{basename}.zip"

Scope = Literal["us", "geoid", "statefp", "summary", "summary_500k"]


@dataclass(frozen=True)
class DatasetKind:
    scope: Scope
    url_template: str
    basename_template: str
    default_year: int


NATIONWIDE_KINDS = (
    "AIANNH", "AITSN", "ANRC", "CBSA", "CNECTA", "COASTLINE", "COUNTY", "CSA",
    "FACESMIL", "METDIV", "MIL", "NECTA", "NECTADIV", "PRIMARYROADS", "RAILS",
    "STATE", "TBG", "TTRACT",
)
GEOID_KINDS = ("AREAWATER", "EDGES", "FACES", "FACESAH", "LINEARWATER", "ROADS")
STATEFP_KINDS = (
    "AREALM", "BG", "COUSUB", "FACESAL", "PLACE", "POINTLM", "PRISECROADS", "SLDL",
    "SLDU", "TABBLOCK", "TRACT", "UNSD",
)
SUMMARY_KINDS = ("CBSA", "CD114", "COUNTY", "CSA", "DIVISION", "NATION", "NECTA", "REGION", "STATE")
SUMMARY_500K_KINDS = ("COUNTY_WITHIN_CD114", "UA10", "ZCTA510")

DATASET_KINDS: dict[str, DatasetKind] = {
    **{k: DatasetKind("us", TIGER_URL, "tl_{year}_us_{name}", 2015) for k in NATIONWIDE_KINDS},
    **{k: DatasetKind("geoid", TIGER_URL, "tl_{year}_{geoid}_{name}", 2015) for k in GEOID_KINDS},
    **{k: DatasetKind("statefp", TIGER_URL, "tl_{year}_{statefp}_{name}", 2015) for k in STATEFP_KINDS},
    **{
        f"{k}SUMMARY": DatasetKind("summary", SUMMARY_URL, "cb_{year}_us_{name}_{resolution}", 2014)
        for k in SUMMARY_KINDS
    },
    **{
        f"{k}SUMMARY": DatasetKind("summary_500k", SUMMARY_URL, "cb_{year}_us_{name}_500k", 2014)
        for k in SUMMARY_500K_KINDS
    },
}


def dataset_location(
    kind: str,
    *,
    year: int | None = None,
    geoid: str = "01001",
    statefp: str = "01",
    resolution: str = "20m",
) -> tuple[str, str]:
    """Return ``(basename, url)`` for a dataset kind."""
    spec = DATASET_KINDS.get(kind.upper())
    if spec is None:
        raise ConfigurationError(f"Unknown dataset kind: {kind!r}")

    year = spec.default_year if year is None else year
    if year < MIN_YEAR:
        raise ConfigurationError(f"year must be {MIN_YEAR} or greater, got {year}")
    if spec.scope == "summary" and resolution not in RESOLUTIONS:
        raise ConfigurationError(f"resolution must be one of {list(RESOLUTIONS)}, got {resolution!r}")

    table_kind = kind.upper().removesuffix("SUMMARY") if spec.scope.startswith("summary") else kind.upper()
    basename = spec.basename_template.format(
        year=year,
        name=table_kind.lower(),
        geoid=geoid,
        statefp=statefp,
        resolution=resolution,
    )
    url = spec.url_template.format(year=year, kind=table_kind, basename=basename)
    return basename, url


def tiger_provider(
    kind: str = "STATE",
    *,
    year: int | None = None,
    geoid: str = "01001",
    statefp: str = "01",
    resolution: str = "20m",
    fetcher: DatasetFetcher | None = None,
) -> ShapefileProvider:
    """Fetch (if needed) and load a Census boundary dataset.

    Example:
        >>> states = tiger_provider("STATESUMMARY", resolution="20m")
        >>> states.projection()
        'epsg:4269'
    """
    basename, url = dataset_location(
        kind, year=year, geoid=geoid, statefp=statefp, resolution=resolution
    )
    fetcher = fetcher or DatasetFetcher.from_settings(load_settings())
    shp_path = fetcher.localize(url, basename)
    return ShapefileProvider(shp_path, projection=TIGER_PROJECTION, name=basename)
