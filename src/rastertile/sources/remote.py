"""Tiles composed from another tile service."""

from __future__ import annotations

import logging

from rastertile.core.errors import RemoteStatusError
from rastertile.core.locator import source_tile_url
from rastertile.core.raster import TiledRaster
from rastertile.core.types import TileCoordinate
from rastertile.fetch.engine import FetchResult, TileFetcher

from .base import TileSource

logger = logging.getLogger(__name__)

# Statuses a tile service uses for "no such tile"
_MISSING_STATUSES = frozenset({404, 410})


class RemoteTileSource(TileSource):
    """Reads ``url/[m/]l/r/c<suffix>`` through the fetch engine.

    The remote levels are addressed as stored, so the skipped levels of the
    raster are added to the client level before building the URL. A remote
    "not found" is reported as a missing tile.
    """

    def __init__(self, raster: TiledRaster, fetcher: TileFetcher, url: str, suffix: str = "") -> None:
        super().__init__(raster)
        self.fetcher = fetcher
        self.url = url
        self.suffix = suffix

    def tile_url(self, coord: TileCoordinate) -> str:
        stored = coord._replace(level=coord.level + self.raster.pyramid.skip)
        return source_tile_url(self.url, stored, self.suffix)

    def read(self, coord: TileCoordinate, buffer: bytearray | memoryview) -> FetchResult:
        if self.raster.pyramid.resolve(coord) is None:
            return FetchResult(buffer=buffer)

        url = self.tile_url(coord)
        result = self.fetcher.fetch(url, buffer)
        error = result.error
        if isinstance(error, RemoteStatusError) and error.status_code in _MISSING_STATUSES:
            logger.debug("Remote has no tile at %s", url)
            return FetchResult(buffer=buffer, status_code=error.status_code)
        return result
