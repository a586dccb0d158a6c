"""Tests for shapefile-backed providers, Census dataset lookup and the fetcher."""

import io
import logging
import os
import zipfile
from pathlib import Path

import pandas as pd
import pytest

from choropleth_maps import ConfigurationError, ShapefileProvider, mapify
from choropleth_maps.config import load_settings
from choropleth_maps.providers import DATASET_KINDS, DatasetFetcher, dataset_location, tiger_provider

from conftest import CALIFORNIA, flatten, write_states_shapefile


class TestShapefileProvider:
    def test_reads_records_and_polygons(self, states_shapefile):
        pv = ShapefileProvider(states_shapefile)
        assert pv.names() == ["NAME", "STATEFP", "STUSPS", "ALAND"]
        assert pv.records()["NAME"].tolist() == ["Alabama", "California", "Nevada"]
        assert len(pv.polygons()) == 3

    def test_parts_stay_concatenated(self, states_shapefile):
        pv = ShapefileProvider(states_shapefile)
        assert pv.polygons()[1] == flatten(CALIFORNIA)

    def test_projection_from_prj(self, states_shapefile):
        assert ShapefileProvider(states_shapefile).projection() == "EPSG:4326"

    def test_projection_override(self, states_shapefile):
        assert ShapefileProvider(states_shapefile, projection="epsg:4269").projection() == "epsg:4269"

    def test_accepts_shp_suffix(self, states_shapefile):
        pv = ShapefileProvider(Path(str(states_shapefile) + ".shp"))
        assert pv.name == "states"
        assert len(pv.records()) == 3

    def test_file_objects(self, states_shapefile):
        base = str(states_shapefile)
        pv = ShapefileProvider(
            shp_file=io.BytesIO(Path(base + ".shp").read_bytes()),
            shx_file=io.BytesIO(Path(base + ".shx").read_bytes()),
            dbf_file=io.BytesIO(Path(base + ".dbf").read_bytes()),
            prj_wkt=Path(base + ".prj").read_text(),
        )
        assert pv.projection() == "EPSG:4326"
        assert pv.records()["STUSPS"].tolist() == ["AL", "CA", "NV"]

    def test_missing_dbf_warns(self, tmp_path, caplog):
        base = write_states_shapefile(tmp_path / "nodbf", with_dbf=False)
        with caplog.at_level(logging.WARNING):
            pv = ShapefileProvider(base)
        assert "No .dbf" in caplog.text
        assert pv.records().empty
        assert len(pv.polygons()) == 3

    def test_missing_dbf_fails_join(self, tmp_path):
        base = write_states_shapefile(tmp_path / "nodbf", with_dbf=False)
        df = pd.DataFrame({"NAME": ["Alabama"]})
        with pytest.raises(ConfigurationError, match="provider records"):
            mapify(df, ShapefileProvider(base), key="NAME")

    def test_uppercase_extensions(self, tmp_path):
        base = write_states_shapefile(tmp_path / "states")
        for ext in (".shp", ".shx", ".dbf", ".prj"):
            Path(str(base) + ext).rename(tmp_path / f"STATES{ext.upper()}")
        pv = ShapefileProvider(tmp_path / "STATES.SHP")
        assert pv.projection() == "EPSG:4326"
        assert pv.records()["NAME"].tolist() == ["Alabama", "California", "Nevada"]
        assert len(pv.polygons()) == 3

    def test_missing_prj(self, tmp_path):
        base = write_states_shapefile(tmp_path / "noprj", with_prj=False)
        with pytest.raises(ConfigurationError, match="projection"):
            ShapefileProvider(base)

    def test_requires_source(self):
        with pytest.raises(ValueError):
            ShapefileProvider()

    def test_mapify(self, states_shapefile, feature_table):
        mp = mapify(feature_table, ShapefileProvider(states_shapefile), key="NAME", keepcols=["STUSPS"])
        assert list(mp["NAME"].unique()) == ["Alabama_1", "California_1", "California_2", "California_3"]
        assert set(mp["STUSPS"]) == {"AL", "CA"}


class TestDatasetLocation:
    def test_summary(self):
        basename, url = dataset_location("STATESUMMARY")
        assert basename == "cb_2014_us_state_20m"
        assert url == "https://www2.census.gov/geo/tiger/GENZ2014/shp/cb_2014_us_state_20m.zip"

    def test_summary_resolution(self):
        basename, _ = dataset_location("countysummary", year=2016, resolution="500k")
        assert basename == "cb_2016_us_county_500k"

    def test_summary_500k_only(self):
        basename, url = dataset_location("ZCTA510SUMMARY", resolution="20m")
        assert basename == "cb_2014_us_zcta510_500k"
        assert url.endswith("/GENZ2014/shp/cb_2014_us_zcta510_500k.zip")

    def test_nationwide(self):
        basename, url = dataset_location("STATE", year=2016)
        assert basename == "tl_2016_us_state"
        assert url == "https://www2.census.gov/geo/tiger/TIGER2016/STATE/tl_2016_us_state.zip"

    def test_statefp(self):
        basename, url = dataset_location("TRACT", statefp="06")
        assert basename == "tl_2015_06_tract"
        assert url == "https://www2.census.gov/geo/tiger/TIGER2015/TRACT/tl_2015_06_tract.zip"

    def test_geoid(self):
        basename, _ = dataset_location("ROADS", geoid="06037")
        assert basename == "tl_2015_06037_roads"

    def test_every_kind_resolves(self):
        for kind in DATASET_KINDS:
            basename, url = dataset_location(kind)
            assert url.endswith(f"/{basename}.zip")

    @pytest.mark.parametrize(
        "kind, options, message",
        [
            ("NOPE", {}, "Unknown dataset kind"),
            ("STATE", {"year": 2009}, "year"),
            ("STATESUMMARY", {"resolution": "1m"}, "resolution"),
        ],
    )
    def test_invalid(self, kind, options, message):
        with pytest.raises(ConfigurationError, match=message):
            dataset_location(kind, **options)


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise RuntimeError(f"HTTP {self.status}")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i : i + chunk_size]


class FakeSession:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status = status
        self.urls = []

    def get(self, url, stream=False, timeout=None):
        self.urls.append(url)
        return FakeResponse(self.content, self.status)


def _zip_shapefile(base: Path, arcname: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for ext in (".shp", ".shx", ".dbf", ".prj"):
            zf.write(str(base) + ext, arcname + ext)
    return buf.getvalue()


class TestDatasetFetcher:
    def test_downloads_and_unpacks(self, tmp_path, states_shapefile):
        session = FakeSession(_zip_shapefile(states_shapefile, "cb_2014_us_state_20m"))
        fetcher = DatasetFetcher(tmp_path / "cache", session=session)
        shp = fetcher.localize("https://example.test/states.zip", "cb_2014_us_state_20m")
        assert shp == tmp_path / "cache" / "cb_2014_us_state_20m" / "cb_2014_us_state_20m.shp"
        assert shp.is_file()
        assert session.urls == ["https://example.test/states.zip"]

    def test_cache_hit_skips_download(self, tmp_path, states_shapefile):
        session = FakeSession(_zip_shapefile(states_shapefile, "x"))
        fetcher = DatasetFetcher(tmp_path, session=session)
        fetcher.localize("https://example.test/x.zip", "x")
        fetcher.localize("https://example.test/x.zip", "x")
        assert len(session.urls) == 1

    def test_archive_without_shapefile(self, tmp_path, states_shapefile):
        session = FakeSession(_zip_shapefile(states_shapefile, "other"))
        fetcher = DatasetFetcher(tmp_path, session=session)
        with pytest.raises(FileNotFoundError):
            fetcher.localize("https://example.test/x.zip", "x")

    def test_http_error_propagates(self, tmp_path):
        fetcher = DatasetFetcher(tmp_path, session=FakeSession(b"", status=404))
        with pytest.raises(RuntimeError, match="404"):
            fetcher.localize("https://example.test/x.zip", "x")

    def test_from_settings(self, tmp_path):
        settings = load_settings({"CHOROPLETH_CACHE_DIR": str(tmp_path), "CHOROPLETH_REQUEST_TIMEOUT": "5"})
        fetcher = DatasetFetcher.from_settings(settings)
        assert fetcher.cache_root == tmp_path
        assert fetcher.timeout == 5.0


class TestTigerProvider:
    def test_loads_from_cache(self, tmp_path):
        cache = tmp_path / "cache"
        write_states_shapefile(_mkdir(cache / "cb_2014_us_state_20m") / "cb_2014_us_state_20m")
        fetcher = DatasetFetcher(cache, session=FakeSession(b"", status=500))
        pv = tiger_provider("STATESUMMARY", fetcher=fetcher)
        assert pv.projection() == "epsg:4269"
        assert pv.name == "cb_2014_us_state_20m"
        assert len(pv.polygons()) == 3

    def test_invalid_resolution_before_download(self, tmp_path):
        session = FakeSession(b"")
        with pytest.raises(ConfigurationError):
            tiger_provider("STATESUMMARY", resolution="1m", fetcher=DatasetFetcher(tmp_path, session=session))
        assert session.urls == []


def _mkdir(path: Path) -> Path:
    path.mkdir(parents=True)
    return path


@pytest.mark.network
@pytest.mark.skipif(not os.environ.get("CHOROPLETH_NETWORK_TESTS"), reason="needs network access")
class TestCensusStates:
    def test_states_summary(self):
        pv = tiger_provider("STATESUMMARY")
        assert {"STUSPS", "AWATER", "LSAD", "AFFGEOID", "STATENS", "GEOID", "ALAND", "STATEFP", "NAME"} == set(pv.names())
        assert pv.projection() == "epsg:4269"
        assert len(pv.polygons()) == 52

    def test_alabama_and_california(self):
        df = pd.DataFrame({"NAME": ["Alabama", "California"], "feature": [26.6673430422, 6.549492945]})
        mp = mapify(df, tiger_provider("STATESUMMARY"), key="NAME")
        assert list(mp["NAME"].unique()) == ["Alabama_1"] + [f"California_{i}" for i in range(1, 7)]
        assert mp.iloc[0]["NAME"] == "Alabama_1"
        assert mp.iloc[0]["CM_X"] == pytest.approx(-9.848286458886575e6, abs=5.0)
        assert mp.iloc[0]["CM_Y"] == pytest.approx(3.7493855901445053e6, abs=5.0)
        assert (mp.loc[mp["CM_ORIG_KEY"] == "Alabama", "feature"] == 26.6673430422).all()
