"""Shared type definitions for rastertile core module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple


class TileCoordinate(NamedTuple):
    """Coordinate of a tile in the pyramid.

    Attributes:
        level: Pyramid level (0 = lowest resolution)
        row: Row index (0-based)
        column: Column index (0-based)
        mosaic: Mosaic (slice) index, 0 when the raster has a single mosaic
    """

    level: int
    row: int
    column: int
    mosaic: int = 0


class RasterSize(NamedTuple):
    """Raster or page size.

    Attributes:
        x: Width in pixels
        y: Height in pixels
        z: Number of mosaics (slices)
        c: Number of bands
    """

    x: int
    y: int
    z: int = 1
    c: int = 3


class BoundingBox(NamedTuple):
    """Geographic extent, in raster projection units."""

    xmin: float = 0.0
    ymin: float = 0.0
    xmax: float = 1.0
    ymax: float = 1.0


class ByteRange(NamedTuple):
    """A byte range of a remote object.

    Attributes:
        offset: First byte
        size: Number of bytes
    """

    offset: int
    size: int

    @property
    def header(self) -> str:
        """Value for the HTTP ``Range`` request header."""
        return f"bytes={self.offset}-{self.offset + self.size - 1}"


@dataclass(frozen=True)
class ResolutionLevel:
    """Information about a pyramid level.

    Attributes:
        resolution_x: Horizontal resolution, units per pixel
        resolution_y: Vertical resolution, units per pixel
        width: Number of tile columns at this level
        height: Number of tile rows at this level
        tile_offset: Tiles stored before this level (all finer levels, all mosaics)
    """

    resolution_x: float
    resolution_y: float
    width: int
    height: int
    tile_offset: int = 0

    @property
    def tile_count(self) -> int:
        """Number of tiles in one mosaic of this level."""
        return self.width * self.height
