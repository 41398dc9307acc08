"""Packed tile stores: one index file and one data file per raster.

The index holds one 16 byte record per tile, big-endian ``(offset, size)``
into the data file, at the position given by ``Pyramid.tile_index``. A
record of size 0 marks a missing tile.
"""

from __future__ import annotations

import logging
import struct
import threading
from pathlib import Path

from rastertile.config import INDEX_RECORD_SIZE
from rastertile.core import fingerprint
from rastertile.core.errors import BufferTooSmallError, FetchError, TransportError
from rastertile.core.raster import TiledRaster
from rastertile.core.types import ByteRange, TileCoordinate
from rastertile.fetch.engine import FetchResult, TileFetcher

from .base import TileSource

logger = logging.getLogger(__name__)

INDEX_FILE = "tiles.idx"
DATA_FILE = "tiles.dat"

_RECORD = struct.Struct(">QQ")
_MASK64 = (1 << 64) - 1


def pack_record(offset: int, size: int) -> bytes:
    return _RECORD.pack(offset, size)


def unpack_record(data: bytes | bytearray | memoryview) -> tuple[int, int]:
    """Read an ``(offset, size)`` index record."""
    return _RECORD.unpack(bytes(data[:INDEX_RECORD_SIZE]))


def _local_fingerprint(data: bytes, offset: int) -> str:
    """Fingerprint of a stored tile.

    Tiles too small to synthesize from are told apart by their place in
    the data file instead.
    """
    value = fingerprint.synthesize(data)
    if value is None:
        value = ((offset << 8) | len(data)) & _MASK64
    return fingerprint.encode(value)


class PackedTileSource(TileSource):
    """Tiles from a local ``tiles.idx`` / ``tiles.dat`` pair.

    Both files stay open for the life of the source; reads are serialized
    with a lock so one source can serve concurrent requests.
    """

    def __init__(self, raster: TiledRaster, index_path: Path, data_path: Path) -> None:
        super().__init__(raster)
        self.index_path = Path(index_path)
        self.data_path = Path(data_path)
        expected = raster.pyramid.total_tiles * INDEX_RECORD_SIZE
        actual = self.index_path.stat().st_size
        if actual < expected:
            logger.warning(
                "Index %s holds %d bytes, pyramid needs %d; missing records read as empty tiles",
                self.index_path, actual, expected,
            )
        self._lock = threading.Lock()
        self._index = open(self.index_path, "rb")
        self._data = open(self.data_path, "rb")

    def close(self) -> None:
        self._index.close()
        self._data.close()

    def _read_at(self, f, offset: int, size: int) -> bytes:
        with self._lock:
            f.seek(offset)
            return f.read(size)

    def read(self, coord: TileCoordinate, buffer: bytearray | memoryview) -> FetchResult:
        result = FetchResult(buffer=buffer)
        index = self.raster.pyramid.tile_index(coord)
        if index is None:
            return result

        record = self._read_at(self._index, index * INDEX_RECORD_SIZE, INDEX_RECORD_SIZE)
        if len(record) < INDEX_RECORD_SIZE:
            return result
        offset, size = unpack_record(record)
        if size == 0:
            return result

        view = memoryview(buffer).cast("B")
        if size > len(view):
            result.error = BufferTooSmallError(
                f"Tile of {size} bytes does not fit buffer of {len(view)} bytes"
            )
            return result

        data = self._read_at(self._data, offset, size)
        if len(data) != size:
            result.error = TransportError(f"Short read at {offset} in {self.data_path}")
            return result

        view[:size] = data
        result.size = size
        result.status_code = 200
        result.fingerprint = _local_fingerprint(data, offset)
        logger.debug("Read %s from %s: %d bytes at %d", coord, self.data_path.name, size, offset)
        return result


class RemotePackedTileSource(TileSource):
    """The packed layout read over HTTP with range requests.

    Whether stored gzip payloads are inflated is up to the fetcher.
    """

    def __init__(
        self,
        raster: TiledRaster,
        fetcher: TileFetcher,
        index_url: str,
        data_url: str,
    ) -> None:
        super().__init__(raster)
        self.fetcher = fetcher
        self.index_url = index_url
        self.data_url = data_url

    def read(self, coord: TileCoordinate, buffer: bytearray | memoryview) -> FetchResult:
        index = self.raster.pyramid.tile_index(coord)
        if index is None:
            return FetchResult(buffer=buffer)

        record = bytearray(INDEX_RECORD_SIZE)
        _, message = self.fetcher.range_read(self.index_url, index * INDEX_RECORD_SIZE, record)
        if message is not None:
            return FetchResult(buffer=buffer, error=FetchError(f"Index read failed: {message}"))
        offset, size = unpack_record(record)
        if size == 0:
            return FetchResult(buffer=buffer, status_code=200)

        capacity = len(memoryview(buffer).cast("B"))
        if size > capacity:
            return FetchResult(
                buffer=buffer,
                error=BufferTooSmallError(
                    f"Tile of {size} bytes does not fit buffer of {capacity} bytes"
                ),
            )
        return self.fetcher.fetch(self.data_url, buffer, ByteRange(offset, size))
