"""Pyramid addressing, fingerprints and raster descriptors."""

from .errors import (
    BufferTooSmallError,
    ConfigError,
    DecompressionError,
    FetchError,
    ParseError,
    RasterTileError,
    RemoteStatusError,
    RetriesExhaustedError,
    TransportError,
)
from .locator import build_tile_url, parse_tile_path, source_tile_url
from .pyramid import Pyramid, build_pyramid
from .raster import TiledRaster, load_raster, save_raster
from .types import BoundingBox, ByteRange, RasterSize, ResolutionLevel, TileCoordinate

__all__ = [
    "BoundingBox",
    "BufferTooSmallError",
    "ByteRange",
    "ConfigError",
    "DecompressionError",
    "FetchError",
    "ParseError",
    "Pyramid",
    "RasterSize",
    "RasterTileError",
    "RemoteStatusError",
    "ResolutionLevel",
    "RetriesExhaustedError",
    "TiledRaster",
    "TileCoordinate",
    "TransportError",
    "build_pyramid",
    "build_tile_url",
    "load_raster",
    "parse_tile_path",
    "save_raster",
    "source_tile_url",
]
