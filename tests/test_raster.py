"""Tests for raster.json descriptors."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from rastertile.config import MAX_READ_SIZE, MAX_TILE_SIZE
from rastertile.core import fingerprint
from rastertile.core.codecs import DataType, ImageFormat
from rastertile.core.errors import ConfigError
from rastertile.core.raster import TiledRaster, load_raster, save_raster
from rastertile.core.types import BoundingBox, RasterSize


class TestFromDict:
    """Tests for TiledRaster.from_dict()."""

    def test_defaults(self):
        raster = TiledRaster.from_dict({"size": [1000, 600]})
        assert raster.size == RasterSize(1000, 600, 1, 3)
        assert raster.page_size == RasterSize(512, 512, 1, 3)
        assert raster.data_type == DataType.BYTE
        assert raster.format == ImageFormat.ANY
        assert raster.bbox == BoundingBox(0, 0, 1, 1)
        assert raster.projection == "SELF"
        assert raster.max_tile_size == MAX_TILE_SIZE
        assert raster.empty_tile is None
        assert raster.source is None
        assert raster.pyramid.level_count == 2

    def test_size_string_with_mosaics(self):
        raster = TiledRaster.from_dict({"size": "1024 1024 3 1", "page_size": "256 256"})
        assert raster.size == RasterSize(1024, 1024, 3, 1)
        assert raster.page_size == RasterSize(256, 256, 1, 1)
        assert raster.mosaics == 3
        assert raster.pyramid.mosaics == 3

    @pytest.mark.parametrize(
        "data_type,precision",
        [("Float32", 0.01), ("Int16", 0.5)],
        ids=["float", "integer"],
    )
    def test_lerc_default_precision(self, data_type, precision):
        raster = TiledRaster.from_dict({"size": [512, 512], "data_type": data_type})
        assert raster.format == ImageFormat.LERC
        assert raster.precision == pytest.approx(precision)

    def test_explicit_precision(self):
        raster = TiledRaster.from_dict({"size": [512, 512], "data_type": "Float32", "precision": 0.25})
        assert raster.precision == pytest.approx(0.25)

    def test_values(self):
        raster = TiledRaster.from_dict(
            {"size": [512, 512], "no_data_value": "-9999", "min_value": 0, "max_value": 255.5}
        )
        assert raster.ndv == -9999.0
        assert raster.min_value == 0.0
        assert raster.max_value == 255.5
        assert raster.codec_params().ndv == -9999.0

    def test_bounding_box(self):
        raster = TiledRaster.from_dict({"size": [1024, 512], "bounding_box": "-180,-90,180,90"})
        assert raster.bbox == BoundingBox(-180, -90, 180, 90)
        assert raster.pyramid[-1].resolution_x == pytest.approx(360 / 1024)

    def test_missing_etag_has_flag(self):
        raster = TiledRaster.from_dict({"size": [512, 512], "etag_seed": "000000000abcd"})
        seed, _ = fingerprint.decode("000000000abcd")
        assert raster.seed == seed
        assert fingerprint.decode(raster.missing_etag) == (seed, True)
        assert raster.missing_etag.startswith("1")

    def test_source_url_string(self):
        raster = TiledRaster.from_dict({"size": [512, 512], "source": "http://h/tiles"})
        assert raster.source.url == "http://h/tiles"
        assert not raster.source.is_packed

    def test_packed_source(self):
        raster = TiledRaster.from_dict(
            {"size": [512, 512], "source": {"index_url": "/t.idx", "data_url": "/t.dat"}}
        )
        assert raster.source.is_packed

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"size": [512]},
            {"size": "512 x"},
            {"size": [512, 512], "format": "image/gif"},
            {"size": [512, 512], "format": "image/png", "data_type": "Float32"},
            {"size": [512, 512], "max_tile_size": 1000},
            {"size": [512, 512], "max_tile_size": 1024**3},
            {"size": [512, 512], "bounding_box": "1,2,3"},
            {"size": [512, 512], "skipped_levels": 1},
            {"size": [512, 512], "no_data_value": "none"},
            {"size": [512, 512], "source": {"suffix": ".jpg"}},
            {"size": [512, 512], "skipped_levels": "many"},
        ],
        ids=[
            "no-size", "short-size", "bad-size", "bad-format", "png-float", "tile-size-small",
            "tile-size-large", "bad-bbox", "skip-all", "bad-ndv", "source-without-url", "bad-skip",
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ConfigError):
            TiledRaster.from_dict(data)


class TestEmptyTile:
    """Tests for loading the empty tile."""

    def test_whole_file(self, temp_dir: Path):
        (temp_dir / "empty.png").write_bytes(b"\x89PNGempty")
        raster = TiledRaster.from_dict({"size": [512, 512], "empty_tile": "empty.png"}, base_dir=temp_dir)
        assert raster.empty_tile == b"\x89PNGempty"

    def test_slice(self, temp_dir: Path):
        (temp_dir / "blob.bin").write_bytes(b"0123456789")
        raster = TiledRaster.from_dict(
            {"size": [512, 512], "empty_tile": {"file": "blob.bin", "offset": 2, "size": 5}},
            base_dir=temp_dir,
        )
        assert raster.empty_tile == b"23456"

    def test_too_large(self, temp_dir: Path):
        (temp_dir / "big.bin").write_bytes(b"\x00" * (MAX_READ_SIZE + 1))
        with pytest.raises(ConfigError):
            TiledRaster.from_dict({"size": [512, 512], "empty_tile": "big.bin"}, base_dir=temp_dir)

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(ConfigError):
            TiledRaster.from_dict({"size": [512, 512], "empty_tile": "nope.jpg"}, base_dir=temp_dir)

    def test_short_file(self, temp_dir: Path):
        (temp_dir / "blob.bin").write_bytes(b"0123")
        with pytest.raises(ConfigError):
            TiledRaster.from_dict(
                {"size": [512, 512], "empty_tile": {"file": "blob.bin", "size": 10}},
                base_dir=temp_dir,
            )


class TestLoadRaster:
    """Tests for load_raster() and save_raster()."""

    def test_load(self, temp_dir: Path, raster_config: dict):
        raster_dir = temp_dir / "a.raster"
        raster_dir.mkdir()
        (raster_dir / "raster.json").write_text(json.dumps(raster_config))
        (raster_dir / "empty.jpg").write_bytes(b"\xff\xd8\xff\xe0")
        raster = load_raster(raster_dir)
        assert raster.format == ImageFormat.JPEG
        assert raster.empty_tile == b"\xff\xd8\xff\xe0"
        assert [(l.width, l.height) for l in raster.pyramid] == [(1, 1), (2, 2), (4, 3)]

    @pytest.mark.parametrize(
        "content",
        [None, "{invalid json", "[1, 2]"],
        ids=["missing", "malformed", "not-object"],
    )
    def test_invalid_file(self, temp_dir: Path, content):
        if content is not None:
            (temp_dir / "raster.json").write_text(content)
        with pytest.raises(ConfigError):
            load_raster(temp_dir)

    def test_save_then_load(self, temp_dir: Path):
        raster = TiledRaster.from_dict(
            {
                "size": [3000, 2000, 2],
                "page_size": [256, 256],
                "data_type": "UInt16",
                "format": "image/png",
                "bounding_box": [0, 0, 30, 20],
                "etag_seed": "00000000000k1",
                "skipped_levels": 1,
                "source": {"url": "http://h/tiles", "suffix": ".png"},
            }
        )
        path = save_raster(raster, temp_dir / "copy.raster")
        assert path.name == "raster.json"
        loaded = load_raster(temp_dir / "copy.raster")
        assert loaded.size == raster.size
        assert loaded.page_size == raster.page_size
        assert loaded.data_type == DataType.UINT16
        assert loaded.format == ImageFormat.PNG
        assert loaded.bbox == raster.bbox
        assert loaded.seed == raster.seed
        assert loaded.skip == 1
        assert loaded.source == raster.source
        assert list(temp_dir.joinpath("copy.raster").glob("*.tmp")) == []
