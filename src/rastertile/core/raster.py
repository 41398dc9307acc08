"""Tiled raster descriptors loaded from ``raster.json``."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rastertile.config import (
    DEFAULT_PAGE_SIZE,
    MAX_READ_SIZE,
    MAX_TILE_SIZE,
    MAX_TILE_SIZE_LIMIT,
    MIN_TILE_SIZE_LIMIT,
)

from . import fingerprint
from .codecs import CodecParams, DataType, ImageFormat
from .errors import ConfigError
from .pyramid import Pyramid, build_pyramid
from .types import BoundingBox, RasterSize

logger = logging.getLogger(__name__)

RASTER_FILE = "raster.json"


@dataclass(frozen=True)
class SourceConfig:
    """Where the tiles of a raster come from, when not stored locally.

    Attributes:
        url: Tile service prefix, tiles are read from ``url/[m/]l/r/c``
        suffix: Appended to every tile URL (e.g. ``.jpg``)
        index_url: Packed index over HTTP, used together with data_url
        data_url: Packed data over HTTP
    """

    url: str | None = None
    suffix: str = ""
    index_url: str | None = None
    data_url: str | None = None

    @property
    def is_packed(self) -> bool:
        return bool(self.index_url and self.data_url)


@dataclass
class TiledRaster:
    """Size, encoding and pyramid of a tiled raster."""

    size: RasterSize
    page_size: RasterSize = RasterSize(DEFAULT_PAGE_SIZE, DEFAULT_PAGE_SIZE)
    data_type: DataType = DataType.BYTE
    format: ImageFormat = ImageFormat.ANY
    bbox: BoundingBox = BoundingBox()
    projection: str = "SELF"
    skip: int = 0
    max_tile_size: int = MAX_TILE_SIZE
    ndv: float | None = None
    min_value: float | None = None
    max_value: float | None = None
    precision: float | None = None
    seed: int = 0
    empty_tile: bytes | None = None
    source: SourceConfig | None = None
    pyramid: Pyramid = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.format == ImageFormat.INVALID:
            raise ConfigError("Invalid format")
        if self.format == ImageFormat.PNG and self.data_type.size > 2:
            raise ConfigError("Invalid DataType for PNG")
        if not MIN_TILE_SIZE_LIMIT <= self.max_tile_size <= MAX_TILE_SIZE_LIMIT:
            raise ConfigError("MaxTileSize should be between 128K and 512M")
        if self.format == ImageFormat.LERC and self.precision is None:
            self.precision = 0.01 if self.data_type.is_float else 0.5
        self.pyramid = build_pyramid(self.size, self.page_size, self.bbox, self.skip)

    @property
    def missing_etag(self) -> str:
        """Fingerprint of the empty tile: the seed with the flag set."""
        return fingerprint.encode(self.seed, True)

    @property
    def mosaics(self) -> int:
        return self.size.z

    def codec_params(self) -> CodecParams:
        return CodecParams(
            size=self.page_size,
            data_type=self.data_type,
            ndv=self.ndv if self.ndv is not None else 0.0,
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "size": list(self.size),
            "page_size": list(self.page_size),
            "data_type": self.data_type.value[0],
            "bounding_box": list(self.bbox),
            "projection": self.projection,
            "skipped_levels": self.skip,
            "max_tile_size": self.max_tile_size,
            "format": self.format.value,
            "etag_seed": fingerprint.encode(self.seed),
        }
        for key, value in (
            ("no_data_value", self.ndv),
            ("min_value", self.min_value),
            ("max_value", self.max_value),
            ("precision", self.precision),
        ):
            if value is not None:
                data[key] = value
        if self.source is not None:
            data["source"] = {
                k: v
                for k, v in (
                    ("url", self.source.url),
                    ("suffix", self.source.suffix),
                    ("index_url", self.source.index_url),
                    ("data_url", self.source.data_url),
                )
                if v
            }
        return data

    @classmethod
    def from_dict(cls, data: dict, base_dir: Path | None = None) -> TiledRaster:
        """Build a raster from its ``raster.json`` mapping.

        Args:
            data: Parsed raster.json
            base_dir: Directory relative file names (the empty tile) resolve against

        Raises:
            ConfigError: If a value is missing, malformed or inconsistent
        """
        if "size" not in data:
            raise ConfigError("Size directive is mandatory")
        size = parse_size(data["size"], "Size")
        page_size = RasterSize(DEFAULT_PAGE_SIZE, DEFAULT_PAGE_SIZE, 1, size.c)
        if "page_size" in data:
            page_size = parse_size(data["page_size"], "PageSize", default_c=size.c)

        data_type = DataType.from_name(data.get("data_type"))
        fmt = ImageFormat.ANY if data_type == DataType.BYTE else ImageFormat.LERC
        if "format" in data:
            fmt = ImageFormat.from_mime(str(data["format"]))

        bbox = BoundingBox()
        if "bounding_box" in data:
            bbox = parse_bbox(data["bounding_box"])

        seed = 0
        if "etag_seed" in data:
            # The flag of a configured seed is ignored
            seed, _ = fingerprint.decode(str(data["etag_seed"]), strict=False)

        empty_tile = None
        if "empty_tile" in data:
            empty_tile = read_empty_tile(data["empty_tile"], base_dir or Path.cwd())

        source = None
        if "source" in data:
            src = data["source"]
            if isinstance(src, str):
                src = {"url": src}
            source = SourceConfig(
                url=src.get("url"),
                suffix=src.get("suffix", ""),
                index_url=src.get("index_url"),
                data_url=src.get("data_url"),
            )
            if not source.url and not source.is_packed:
                raise ConfigError("Source needs a url, or both index_url and data_url")

        try:
            return cls(
                size=size,
                page_size=page_size,
                data_type=data_type,
                format=fmt,
                bbox=bbox,
                projection=str(data.get("projection", "SELF")),
                skip=int(data.get("skipped_levels", 0)),
                max_tile_size=int(data.get("max_tile_size", MAX_TILE_SIZE)),
                ndv=_optional_float(data, "no_data_value"),
                min_value=_optional_float(data, "min_value"),
                max_value=_optional_float(data, "max_value"),
                precision=_optional_float(data, "precision"),
                seed=seed,
                empty_tile=empty_tile,
                source=source,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid raster configuration: {e}") from e


def _optional_float(data: dict, key: str) -> float | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} is not a number: {value!r}") from e


def parse_size(value: Any, name: str, default_c: int = 3) -> RasterSize:
    """Read ``[x, y]``, ``[x, y, z]`` or ``[x, y, z, c]``, or the same as a
    whitespace separated string.
    """
    if isinstance(value, str):
        value = value.split()
    try:
        parts = [int(v) for v in value]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} incorrect format") from e
    if not 2 <= len(parts) <= 4:
        raise ConfigError(f"{name} incorrect format, expecting 2 to 4 integers")
    if len(parts) == 2:
        parts.append(1)
    if len(parts) == 3:
        parts.append(default_c)
    return RasterSize(*parts)


def parse_bbox(value: Any) -> BoundingBox:
    """Read ``xmin, ymin, xmax, ymax`` as a list or a comma separated string."""
    if isinstance(value, str):
        value = value.split(",")
    try:
        parts = [float(v) for v in value]
    except (TypeError, ValueError) as e:
        raise ConfigError(
            "BoundingBox incorrect format, expecting four comma separated numbers"
        ) from e
    if len(parts) != 4:
        raise ConfigError("BoundingBox incorrect format, expecting four comma separated numbers")
    return BoundingBox(*parts)


def read_empty_tile(entry: str | dict, base_dir: Path) -> bytes:
    """Load the empty tile, a whole file or a slice of one.

    Args:
        entry: File name, or a mapping with ``file`` and optional ``offset``
            and ``size`` (size 0 means the whole file)
        base_dir: Directory relative file names resolve against

    Raises:
        ConfigError: If the file cannot be read or exceeds MAX_READ_SIZE
    """
    if isinstance(entry, str):
        entry = {"file": entry}
    path = base_dir / str(entry.get("file", ""))
    offset = int(entry.get("offset", 0))
    size = int(entry.get("size", 0))

    try:
        if size == 0:
            size = path.stat().st_size - offset
        if size > MAX_READ_SIZE:
            raise ConfigError(f"Empty tile too large, max is {MAX_READ_SIZE}")
        with path.open("rb") as f:
            f.seek(offset)
            data = f.read(size)
    except OSError as e:
        raise ConfigError(f"Can't read empty tile {path}: {e}") from e

    if len(data) != size:
        raise ConfigError(f"Can't read {size} bytes from {path}")
    return data


def load_raster(raster_dir: Path) -> TiledRaster:
    """Load ``raster.json`` from a raster directory.

    Raises:
        ConfigError: If the file is missing, not JSON, or not a valid raster
    """
    raster_dir = Path(raster_dir)
    config_path = raster_dir / RASTER_FILE
    try:
        with open(config_path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Can't read {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} does not hold a JSON object")

    raster = TiledRaster.from_dict(data, base_dir=raster_dir)
    logger.info(
        "Loaded raster %s: %dx%d px, %d levels",
        raster_dir.name, raster.size.x, raster.size.y, raster.pyramid.level_count,
    )
    return raster


def save_raster(raster: TiledRaster, raster_dir: Path) -> Path:
    """Atomically write ``raster.json`` into a raster directory.

    Writes to a temp file in the same directory, then replaces the target.
    The empty tile is not written; it stays wherever the loaded
    configuration pointed.
    """
    raster_dir = Path(raster_dir)
    raster_dir.mkdir(parents=True, exist_ok=True)
    path = raster_dir / RASTER_FILE
    fd, tmp_path = tempfile.mkstemp(dir=raster_dir, suffix=".tmp", prefix=path.stem)
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(raster.to_dict(), f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return path
