"""Tile sources: where the bytes of a raster's tiles come from."""

from __future__ import annotations

from pathlib import Path

from rastertile.core.errors import ConfigError
from rastertile.core.raster import TiledRaster
from rastertile.fetch.engine import TileFetcher

from .base import TileSource
from .packed import DATA_FILE, INDEX_FILE, PackedTileSource, RemotePackedTileSource
from .packer import pack_tiles
from .remote import RemoteTileSource


def open_source(
    raster: TiledRaster,
    raster_dir: Path,
    fetcher: TileFetcher | None = None,
) -> TileSource:
    """Pick the tile source a raster is configured for.

    A ``source`` section selects a remote source and needs a fetcher;
    otherwise the packed files inside raster_dir are used.

    Raises:
        ConfigError: If the configured source cannot be opened
    """
    source = raster.source
    if source is not None:
        if fetcher is None:
            raise ConfigError("A remote tile source needs a fetcher")
        if source.is_packed:
            return RemotePackedTileSource(raster, fetcher, source.index_url, source.data_url)
        return RemoteTileSource(raster, fetcher, source.url, source.suffix)

    raster_dir = Path(raster_dir)
    index_path = raster_dir / INDEX_FILE
    data_path = raster_dir / DATA_FILE
    if not index_path.is_file() or not data_path.is_file():
        raise ConfigError(f"Missing {INDEX_FILE} or {DATA_FILE} in {raster_dir}")
    return PackedTileSource(raster, index_path, data_path)


__all__ = [
    "DATA_FILE",
    "INDEX_FILE",
    "PackedTileSource",
    "RemotePackedTileSource",
    "RemoteTileSource",
    "TileSource",
    "open_source",
    "pack_tiles",
]
