"""Runtime settings, read from the environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "choropleth_maps"


class Settings(BaseModel):
    """Settings shared by the dataset fetcher and the HTTP server."""

    cache_dir: Path = DEFAULT_CACHE_DIR
    default_projection: str = "3857"
    request_timeout_s: float = 60.0


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from ``CHOROPLETH_*`` environment variables."""
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}
    if env.get("CHOROPLETH_CACHE_DIR"):
        values["cache_dir"] = Path(env["CHOROPLETH_CACHE_DIR"]).expanduser()
    if env.get("CHOROPLETH_PROJECTION"):
        values["default_projection"] = env["CHOROPLETH_PROJECTION"]
    if env.get("CHOROPLETH_REQUEST_TIMEOUT"):
        values["request_timeout_s"] = env["CHOROPLETH_REQUEST_TIMEOUT"]
    return Settings(**values)


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for the server entry point."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
