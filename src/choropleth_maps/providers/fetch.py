"""Download and cache zipped shapefile archives."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import requests

from ..config import Settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class DatasetFetcher:
    """Keeps ``<cache_root>/<basename>/<basename>.shp`` (plus companions) on disk.

    Archives are downloaded and unpacked only when the shapefile is not
    already cached.
    """

    def __init__(
        self,
        cache_root: str | Path,
        *,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.cache_root = Path(cache_root)
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> DatasetFetcher:
        return cls(settings.cache_dir, timeout=settings.request_timeout_s)

    def cache_dir(self, basename: str) -> Path:
        return self.cache_root / basename

    def shp_path(self, basename: str) -> Path:
        return self.cache_dir(basename) / f"{basename}.shp"

    def is_cached(self, basename: str) -> bool:
        return self.shp_path(basename).is_file()

    def localize(self, url: str, basename: str) -> Path:
        """Return the local ``.shp`` path for ``basename``, downloading ``url`` if needed."""
        if self.is_cached(basename):
            logger.debug("Cache hit for %s", basename)
            return self.shp_path(basename)

        self.cache_root.mkdir(parents=True, exist_ok=True)
        zip_path = self.cache_root / f"{basename}.zip"
        self._download(url, zip_path)

        with zipfile.ZipFile(zip_path) as zf:
            zf.extractall(self.cache_dir(basename))

        if not self.is_cached(basename):
            raise FileNotFoundError(f"Archive {url} does not contain {basename}.shp")
        return self.shp_path(basename)

    def _download(self, url: str, dest: Path) -> None:
        logger.info("Downloading %s", url)
        with self._session.get(url, stream=True, timeout=self.timeout) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
