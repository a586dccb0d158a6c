from pathlib import Path

import pandas as pd
import pytest
import shapefile
from pyproj import CRS

from choropleth_maps import StaticProvider

# Exterior rings run clockwise; every ring is closed.
ALABAMA = [
    [(-88.0, 31.0), (-88.0, 35.0), (-85.0, 35.0), (-85.0, 31.0), (-88.0, 31.0)],
]
CALIFORNIA = [
    [(-124.0, 32.5), (-124.0, 42.0), (-114.0, 42.0), (-114.0, 32.5), (-124.0, 32.5)],
    [(-119.5, 33.9), (-119.5, 34.1), (-119.3, 34.1), (-119.5, 33.9)],
    [(-118.6, 33.3), (-118.6, 33.5), (-118.3, 33.5), (-118.3, 33.3), (-118.6, 33.3)],
]
NEVADA = [
    [(-120.0, 35.0), (-120.0, 42.0), (-114.0, 42.0), (-114.0, 36.0), (-120.0, 35.0)],
]

STATES = [
    ("Alabama", "01", "AL", 131174048583, ALABAMA),
    ("California", "06", "CA", 403503931312, CALIFORNIA),
    ("Nevada", "32", "NV", 284329506470, NEVADA),
]


def flatten(rings):
    return [list(pt) for ring in rings for pt in ring]


def write_states_shapefile(base: Path, *, with_dbf: bool = True, with_prj: bool = True) -> Path:
    """Write the three fixture states to ``base``.shp/.shx/.dbf/.prj."""
    with shapefile.Writer(str(base), shapeType=shapefile.POLYGON) as w:
        w.field("NAME", "C", size=40)
        w.field("STATEFP", "C", size=2)
        w.field("STUSPS", "C", size=2)
        w.field("ALAND", "N", size=14, decimal=0)
        for name, statefp, stusps, aland, rings in STATES:
            w.poly([list(ring) for ring in rings])
            w.record(name, statefp, stusps, aland)
    if with_prj:
        Path(str(base) + ".prj").write_text(CRS.from_epsg(4326).to_wkt())
    if not with_dbf:
        Path(str(base) + ".dbf").unlink()
    return base


@pytest.fixture
def states_shapefile(tmp_path):
    return write_states_shapefile(tmp_path / "states")


@pytest.fixture
def states_provider():
    return StaticProvider(
        polygons=[flatten(rings) for *_, rings in STATES],
        records={
            "NAME": [s[0] for s in STATES],
            "STATEFP": [s[1] for s in STATES],
            "STUSPS": [s[2] for s in STATES],
            "ALAND": [s[3] for s in STATES],
        },
        projection="epsg:4326",
    )


@pytest.fixture
def feature_table():
    return pd.DataFrame({"NAME": ["Alabama", "California"], "feature": [26.6673430422, 6.549492945]})
