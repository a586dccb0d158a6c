"""FastAPI server exposing mapify and graticule generation."""

from __future__ import annotations

import io
import logging
import tempfile
import zipfile
from pathlib import Path

import pandas as pd
from fastapi import FastAPI, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .config import load_settings
from .errors import ConfigurationError
from .graticule import graticule_for_bbox
from .mapify import mapify
from .models import BoundingBox, Graticule
from .providers import ShapefileProvider

logger = logging.getLogger(__name__)

app = FastAPI(title="Choropleth Maps", version="0.1.0")

COMPANION_EXTS = {".shp", ".shx", ".dbf", ".prj"}
CSV_CHUNK_ROWS = 10_000


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.post("/mapify")
async def mapify_upload(
    files: list[UploadFile],
    data: UploadFile,
    key: str = Query(...),
    plotgroup: str | None = Query(None),
    projection: str | None = Query(None),
    keepcols: list[str] = Query([]),
    source_crs: str | None = Query(None),
    format: str = Query("csv", pattern="^(csv|json)$"),
):
    """Join an uploaded CSV with an uploaded shapefile and return vertex rows.

    The shapefile is accepted as:
    - A single .zip containing shapefile components
    - Multiple files (.shp, .shx, .dbf, and optionally .prj)

    ``source_crs`` is required when the shapefile has no .prj.
    """
    filename = (files[0].filename or "").lower() if len(files) == 1 else ""

    if filename.endswith(".zip"):
        provider = await _handle_zip(files[0], source_crs)
    else:
        provider = await _handle_multi_file(files, source_crs)

    df = _read_table(await data.read(), key, provider)
    logger.info("Mapping %d uploaded rows onto %s by %r", len(df), provider.name, key)
    frame = mapify(
        df,
        provider,
        key=key,
        plotgroup=plotgroup,
        projection=projection or load_settings().default_projection,
        keepcols=keepcols,
    )

    if format == "json":
        return Response(content=frame.to_json(orient="records"), media_type="application/json")

    return _frame_to_csv_response(frame)


@app.get("/graticule", response_model=Graticule)
def graticule_endpoint(
    min_x: float,
    min_y: float,
    max_x: float,
    max_y: float,
    src_crs: str = "epsg:4326",
    dst_crs: str = "epsg:3857",
    show_labels: bool = True,
) -> Graticule:
    """Grid lines (and labels) for a bounding box given in ``src_crs`` units."""
    bbox = BoundingBox(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y)
    return graticule_for_bbox(bbox, src_crs=src_crs, dst_crs=dst_crs, show_labels=show_labels)


async def _handle_zip(upload: UploadFile, source_crs: str | None) -> ShapefileProvider:
    """Extract a shapefile from a zip archive and load it."""
    content = await upload.read()
    with tempfile.TemporaryDirectory() as extract_dir:
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as zf:
                zf.extractall(extract_dir)
        except zipfile.BadZipFile as exc:
            raise HTTPException(status_code=400, detail="Uploaded .zip is not a valid archive") from exc

        shp_files = sorted(p for p in Path(extract_dir).rglob("*") if p.suffix.lower() == ".shp")
        if not shp_files:
            raise HTTPException(status_code=400, detail="No .shp file found in zip archive")

        return ShapefileProvider(shp_files[0], projection=source_crs, name=shp_files[0].stem)


async def _handle_multi_file(files: list[UploadFile], source_crs: str | None) -> ShapefileProvider:
    """Load a shapefile from multiple uploaded component files."""
    file_map: dict[str, bytes] = {}
    stem = None
    for f in files:
        path = Path(f.filename or "")
        ext = path.suffix.lower()
        if ext in COMPANION_EXTS:
            file_map[ext] = await f.read()
            if ext == ".shp":
                stem = path.stem

    if ".shp" not in file_map:
        raise HTTPException(status_code=400, detail="Missing required .shp file")

    shp_file = io.BytesIO(file_map[".shp"])
    shx_file = io.BytesIO(file_map[".shx"]) if ".shx" in file_map else None
    dbf_file = io.BytesIO(file_map[".dbf"]) if ".dbf" in file_map else None

    prj_wkt = None
    if ".prj" in file_map:
        prj_wkt = file_map[".prj"].decode("utf-8", errors="replace")

    return ShapefileProvider(
        shp_file=shp_file,
        shx_file=shx_file,
        dbf_file=dbf_file,
        prj_wkt=prj_wkt,
        projection=source_crs,
        name=stem,
    )


def _read_table(content: bytes, key: str, provider: ShapefileProvider) -> pd.DataFrame:
    """Parse the uploaded CSV, reading ``key`` as text when the provider's key is text."""
    records = provider.records()
    dtype = None
    if key in records.columns and pd.api.types.is_string_dtype(records[key]):
        dtype = {key: str}
    try:
        return pd.read_csv(io.BytesIO(content), dtype=dtype)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise HTTPException(status_code=400, detail=f"Could not parse data CSV: {exc}") from exc


def _frame_to_csv_response(frame: pd.DataFrame) -> StreamingResponse:
    """Convert a vertex frame to a streaming CSV response."""

    def generate():
        yield frame.head(0).to_csv(index=False)
        for start in range(0, len(frame), CSV_CHUNK_ROWS):
            yield frame.iloc[start : start + CSV_CHUNK_ROWS].to_csv(index=False, header=False)

    return StreamingResponse(
        generate(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=choropleth_vertices.csv"},
    )
