"""Resolution sets (pyramid level tables) for tiled rasters."""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

from rastertile.config import MAX_LEVELS

from .errors import ConfigError
from .types import BoundingBox, RasterSize, ResolutionLevel, TileCoordinate

logger = logging.getLogger(__name__)


def level_count_for_grid(width: int, height: int) -> int:
    """Number of levels needed to halve a tile grid down to a single tile.

    Equivalent to ``2 + floor(log2(max(width, height) - 1))``, and 1 for a
    grid that already is a single tile.
    """
    longest = max(width, height)
    if longest <= 1:
        return 1
    return 1 + (longest - 1).bit_length()


class Pyramid(Sequence[ResolutionLevel]):
    """Immutable level table of a tiled raster.

    Index 0 is the coarsest level (a single tile), the last index is the full
    resolution level. The top ``skip`` levels exist in storage but are not
    addressable by clients: client level ``l`` maps to ``pyramid[l + skip]``.
    """

    def __init__(self, levels: Sequence[ResolutionLevel], skip: int = 0, mosaics: int = 1) -> None:
        self._levels = tuple(levels)
        self._skip = skip
        self._mosaics = mosaics

    def __getitem__(self, index):  # type: ignore[override]
        return self._levels[index]

    def __len__(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[ResolutionLevel]:
        return iter(self._levels)

    def __repr__(self) -> str:
        grids = ", ".join(f"{l.width}x{l.height}" for l in self._levels)
        return f"Pyramid([{grids}], skip={self._skip})"

    @property
    def level_count(self) -> int:
        return len(self._levels)

    @property
    def skip(self) -> int:
        return self._skip

    @property
    def mosaics(self) -> int:
        return self._mosaics

    @property
    def total_tiles(self) -> int:
        """Tiles in every level and mosaic."""
        return sum(l.tile_count for l in self._levels) * self._mosaics

    def resolve(self, coord: TileCoordinate) -> ResolutionLevel | None:
        """Map a client tile coordinate onto its level, checking bounds.

        Returns:
            The ResolutionLevel holding the tile, or None when the level,
            row, column or mosaic falls outside the pyramid
        """
        level = coord.level + self._skip
        if coord.level < 0 or level >= len(self._levels):
            return None
        info = self._levels[level]
        if not (0 <= coord.row < info.height and 0 <= coord.column < info.width):
            return None
        if not 0 <= coord.mosaic < self._mosaics:
            return None
        return info

    def tile_index(self, coord: TileCoordinate) -> int | None:
        """Linear position of a tile in a packed store, None if out of bounds."""
        info = self.resolve(coord)
        if info is None:
            return None
        return (
            info.tile_offset
            + (coord.mosaic * info.height + coord.row) * info.width
            + coord.column
        )


def build_pyramid(
    size: RasterSize | tuple[int, ...],
    page_size: RasterSize | tuple[int, ...],
    bbox: BoundingBox | None = None,
    skip: int = 0,
) -> Pyramid:
    """Compute the level table of a raster.

    Levels are generated from the full resolution grid by repeated ceiling
    halving, doubling the resolution at every step, then reversed so that
    level 0 is the single tile at the top.

    Args:
        size: Full raster size; the third component, if any, is the mosaic count
        page_size: Tile size in pixels
        bbox: Raster extent, defaults to the unit square
        skip: Number of top levels hidden from clients

    Returns:
        The Pyramid, coarsest level first

    Raises:
        ConfigError: If the sizes are not positive, the grid does not reduce
            to a single tile, or skip leaves no addressable level
    """
    size = RasterSize(*size)
    page_size = RasterSize(*page_size)
    bbox = bbox or BoundingBox()

    if size.x < 1 or size.y < 1 or size.z < 1:
        raise ConfigError(f"Raster size must be positive, got {size.x}x{size.y}x{size.z}")
    if page_size.x < 1 or page_size.y < 1:
        raise ConfigError(f"Page size must be positive, got {page_size.x}x{page_size.y}")
    if page_size.z != 1:
        raise ConfigError(f"Page size must hold a single slice, got z={page_size.z}")
    if skip < 0:
        raise ConfigError(f"Skipped levels must not be negative, got {skip}")

    width = 1 + (size.x - 1) // page_size.x
    height = 1 + (size.y - 1) // page_size.y
    count = level_count_for_grid(width, height)
    if count > MAX_LEVELS:
        raise ConfigError(f"Raster needs {count} levels, more than {MAX_LEVELS}")

    rx = (bbox.xmax - bbox.xmin) / size.x
    ry = (bbox.ymax - bbox.ymin) / size.y
    tiles = 0
    levels = []
    for _ in range(count):
        levels.append(ResolutionLevel(rx, ry, width, height, tiles))
        tiles += size.z * width * height
        width = 1 + (width - 1) // 2
        height = 1 + (height - 1) // 2
        rx *= 2
        ry *= 2
    levels.reverse()  # level 0 = smallest

    top = levels[0]
    if top.width != 1 or top.height != 1:
        raise ConfigError(f"Pyramid top level is {top.width}x{top.height} tiles, expected 1x1")
    if skip >= count:
        raise ConfigError(f"Skipped levels ({skip}) must be fewer than the level count ({count})")

    logger.debug("Built %d pyramid levels for %dx%d raster", count, size.x, size.y)
    return Pyramid(levels, skip=skip, mosaics=size.z)
