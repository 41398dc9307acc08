"""Test fixtures for rastertile tests."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from fakes import JPEG_HEAD, make_tile
from rastertile.core.raster import load_raster
from rastertile.sources.packed import DATA_FILE, INDEX_FILE, pack_record

# Stored (pyramid index) coordinates left out of the packed fixture
MISSING_TILES = {(2, 2, 3)}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def raster_config() -> dict:
    """A 1000x600 raster in 256 pixel tiles: grids 4x3, 2x2 and 1x1."""
    return {
        "size": [1000, 600],
        "page_size": [256, 256],
        "format": "image/jpeg",
        "etag_seed": "000000000abcd",
        "empty_tile": "empty.jpg",
    }


@pytest.fixture
def packed_raster_dir(temp_dir: Path, raster_config: dict) -> Path:
    """Raster directory with raster.json, an empty tile and packed tiles.

    Every tile except stored level 2, row 2, column 3 is present, holding
    ``make_tile(level, row, column)`` for its pyramid index level.
    """
    raster_dir = temp_dir / "sample.raster"
    raster_dir.mkdir()
    (raster_dir / "raster.json").write_text(json.dumps(raster_config))
    (raster_dir / "empty.jpg").write_bytes(JPEG_HEAD + b"empty")

    pyramid = load_raster(raster_dir).pyramid
    records = [pack_record(0, 0)] * pyramid.total_tiles
    offset = 0
    with open(raster_dir / DATA_FILE, "wb") as data_file:
        for level, info in enumerate(pyramid):
            for row in range(info.height):
                for column in range(info.width):
                    if (level, row, column) in MISSING_TILES:
                        continue
                    data = make_tile(level, row, column)
                    data_file.write(data)
                    records[info.tile_offset + row * info.width + column] = pack_record(offset, len(data))
                    offset += len(data)
    (raster_dir / INDEX_FILE).write_bytes(b"".join(records))
    return raster_dir
