"""Pack a directory of tile files into a ``tiles.idx`` / ``tiles.dat`` pair."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from rastertile.core.errors import ConfigError
from rastertile.core.raster import TiledRaster

from .packed import DATA_FILE, INDEX_FILE, pack_record

logger = logging.getLogger(__name__)

TILE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".lrc", ".gz", "")


def _find_tile(level_dir: Path, row: int, column: int, mosaic: int) -> Path | None:
    stem = f"{row}_{column}" if mosaic == 0 else f"{mosaic}_{row}_{column}"
    for ext in TILE_EXTENSIONS:
        path = level_dir / f"{stem}{ext}"
        if path.is_file():
            return path
    return None


def pack_tiles(
    tiles_dir: Path,
    raster: TiledRaster,
    out_dir: Path,
    progress_callback: Callable[[int, int], None] | None = None,
) -> tuple[int, int]:
    """Pack tile files into the packed layout read by ``PackedTileSource``.

    Tiles are read from ``tiles_dir/<level>/<row>_<col>.<ext>`` (with a
    ``<mosaic>_`` prefix for mosaics other than 0), where level is a pyramid
    index counting the skipped levels. Absent files become empty records.

    Args:
        tiles_dir: Root of the tile tree
        raster: Raster the tiles belong to
        out_dir: Directory receiving tiles.idx and tiles.dat
        progress_callback: Called as (done, total) after every tile

    Returns:
        Tuple of (tiles packed, bytes written to tiles.dat)

    Raises:
        ConfigError: If tiles_dir is missing or a tile exceeds max_tile_size
    """
    tiles_dir = Path(tiles_dir)
    out_dir = Path(out_dir)
    if not tiles_dir.is_dir():
        raise ConfigError(f"Missing tile directory: {tiles_dir}")
    out_dir.mkdir(parents=True, exist_ok=True)

    pyramid = raster.pyramid
    total = pyramid.total_tiles
    records = [b""] * total
    done = 0
    packed = 0
    data_offset = 0

    with open(out_dir / DATA_FILE, "wb") as data_file:
        for level_num, info in enumerate(pyramid):
            level_dir = tiles_dir / str(level_num)
            for mosaic in range(pyramid.mosaics):
                for row in range(info.height):
                    for column in range(info.width):
                        position = (
                            info.tile_offset + (mosaic * info.height + row) * info.width + column
                        )
                        tile_path = _find_tile(level_dir, row, column, mosaic)
                        if tile_path is None:
                            records[position] = pack_record(0, 0)
                        else:
                            data = tile_path.read_bytes()
                            if len(data) > raster.max_tile_size:
                                raise ConfigError(
                                    f"Tile {tile_path} is {len(data)} bytes, "
                                    f"max_tile_size is {raster.max_tile_size}"
                                )
                            data_file.write(data)
                            records[position] = pack_record(data_offset, len(data))
                            data_offset += len(data)
                            packed += 1

                        done += 1
                        if progress_callback:
                            progress_callback(done, total)

    with open(out_dir / INDEX_FILE, "wb") as idx_file:
        idx_file.write(b"".join(records))

    logger.info(
        "Packed %d of %d tiles (%d bytes) into %s", packed, total, data_offset, out_dir
    )
    return packed, data_offset
