"""Tile source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rastertile.core.raster import TiledRaster
from rastertile.core.types import TileCoordinate
from rastertile.fetch.engine import FetchResult


class TileSource(ABC):
    """Provides the stored bytes of the tiles of one raster.

    ``read`` fills the caller's buffer. A successful result of size 0 means
    the tile is not stored (a missing tile), which callers answer with the
    raster's empty tile.
    """

    def __init__(self, raster: TiledRaster) -> None:
        self.raster = raster

    @abstractmethod
    def read(self, coord: TileCoordinate, buffer: bytearray | memoryview) -> FetchResult:
        """Read one tile, coord in client levels (skipped levels not counted)."""

    def close(self) -> None:
        """Release any handles the source holds."""

    def __enter__(self) -> TileSource:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
