"""Codec boundary: formats, data types and the decoder dispatch.

Pixel codecs are not part of rastertile. A decoder is anything matching the
``Decoder`` protocol; it reports failure by returning an error message, and
``stride_decode`` picks one by the payload signature.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol

from .types import RasterSize

JPEG_SIG = b"\xff\xd8\xff"
PNG_SIG = b"\x89PNG"
LERC_SIG = b"CntZ"
GZIP_SIG = b"\x1f\x8b\x08\x00"


class ImageFormat(Enum):
    """Tile encodings. ANY decodes whatever is stored and encodes as JPEG."""

    ANY = "any"
    JPEG = "image/jpeg"
    PNG = "image/png"
    LERC = "raster/lerc"
    INVALID = "invalid"

    @classmethod
    def from_mime(cls, mime: str) -> ImageFormat:
        for fmt in (cls.ANY, cls.JPEG, cls.PNG, cls.LERC):
            if fmt.value == mime:
                return fmt
        return cls.INVALID


class DataType(Enum):
    """Pixel data types, value is (name, size in bytes)."""

    BYTE = ("Byte", 1)
    UINT16 = ("UInt16", 2)
    INT16 = ("Int16", 2)
    UINT32 = ("UInt32", 4)
    INT32 = ("Int32", 4)
    FLOAT32 = ("Float32", 4)
    FLOAT64 = ("Float64", 8)

    @property
    def size(self) -> int:
        return self.value[1]

    @property
    def is_float(self) -> bool:
        return self in (DataType.FLOAT32, DataType.FLOAT64)

    @classmethod
    def from_name(cls, name: str | None) -> DataType:
        """Data type by case-insensitive name; unknown or missing names give BYTE."""
        if not name:
            return cls.BYTE
        return _DATA_TYPE_NAMES.get(name.strip().lower(), cls.BYTE)


_DATA_TYPE_NAMES = {
    "byte": DataType.BYTE,
    "char": DataType.BYTE,
    "uint16": DataType.UINT16,
    "int16": DataType.INT16,
    "short": DataType.INT16,
    "uint32": DataType.UINT32,
    "int32": DataType.INT32,
    "int": DataType.INT32,
    "float32": DataType.FLOAT32,
    "float": DataType.FLOAT32,
    "float64": DataType.FLOAT64,
    "double": DataType.FLOAT64,
}


def detect_format(data: bytes | bytearray | memoryview) -> ImageFormat:
    """Image format from the leading signature bytes, INVALID if unknown."""
    head = bytes(data[:4])
    if head.startswith(JPEG_SIG):
        return ImageFormat.JPEG
    if head == PNG_SIG:
        return ImageFormat.PNG
    if head == LERC_SIG:
        return ImageFormat.LERC
    return ImageFormat.INVALID


def is_gzip(data: bytes | bytearray | memoryview) -> bool:
    return bytes(data[:4]) == GZIP_SIG


@dataclass
class CodecParams:
    """Parameters shared by every decoder.

    Attributes:
        size: Expected tile size (page size of the raster)
        data_type: Pixel data type
        ndv: No-data value
        line_stride: Bytes per output line, 0 for packed lines
        modified: Set by a decoder when it altered the data (e.g. zero mask)
        format: Format detected by ``stride_decode``
        options: Codec specific settings (quality, precision, ...)
    """

    size: RasterSize
    data_type: DataType = DataType.BYTE
    ndv: float = 0.0
    line_stride: int = 0
    modified: bool = False
    format: ImageFormat = ImageFormat.INVALID
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def min_buffer_size(self) -> int:
        """Bytes needed to hold one decoded tile."""
        return self.size.x * self.size.y * self.size.c * self.data_type.size


class Decoder(Protocol):
    def __call__(self, params: CodecParams, data: bytes, out: memoryview) -> str | None:
        """Decode data into out; return an error message, or None on success."""
        ...


def stride_decode(
    params: CodecParams,
    data: bytes,
    out: memoryview,
    decoders: Mapping[ImageFormat, Decoder],
) -> str | None:
    """Decode a tile with the decoder registered for its signature.

    Returns:
        None on success, otherwise an error message
    """
    fmt = detect_format(data)
    params.format = fmt
    decoder = decoders.get(fmt)
    if decoder is None:
        if fmt == ImageFormat.INVALID:
            return "Decode requested for unknown format"
        return f"No decoder available for {fmt.value}"
    return decoder(params, data, out)
