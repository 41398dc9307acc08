"""Tests for tile coordinate paths and URLs."""

from __future__ import annotations

import pytest

from rastertile.core.errors import ParseError
from rastertile.core.locator import build_tile_url, parse_tile_path, source_tile_url
from rastertile.core.types import TileCoordinate


class TestParseTilePath:
    """Tests for parse_tile_path()."""

    @pytest.mark.parametrize(
        "path",
        ["3/4/5", "/tile/3/4/5", "raster/tile/3/4/5/", "3//4/5"],
        ids=["bare", "prefixed", "trailing-slash", "empty-segment"],
    )
    def test_reads_last_three_segments(self, path):
        assert parse_tile_path(path) == TileCoordinate(3, 4, 5, 0)

    def test_mosaic_segment(self):
        assert parse_tile_path("/tile/2/3/4/5", need_mosaic=True) == TileCoordinate(3, 4, 5, 2)

    def test_segment_list(self):
        assert parse_tile_path(["", "1", "2", "3"]) == TileCoordinate(1, 2, 3)

    @pytest.mark.parametrize(
        "path,need_mosaic",
        [
            ("4/5", False),
            ("", False),
            ("3/4/5", True),
            ("x/4/5", False),
            ("3/4/5.jpg", False),
            ("3/-4/5", False),
            ("-1/3/4/5", True),
        ],
        ids=["too-few", "empty", "missing-mosaic", "not-integer", "suffix", "negative", "negative-mosaic"],
    )
    def test_invalid(self, path, need_mosaic):
        with pytest.raises(ParseError):
            parse_tile_path(path, need_mosaic=need_mosaic)


class TestBuildTileUrl:
    """Tests for build_tile_url()."""

    def test_omits_mosaic_zero(self):
        assert build_tile_url("http://h/r", TileCoordinate(3, 4, 5)) == "http://h/r/tile/3/4/5"

    def test_includes_mosaic(self):
        url = build_tile_url("http://h/r", TileCoordinate(3, 4, 5, 2), ".png")
        assert url == "http://h/r/tile/2/3/4/5.png"

    @pytest.mark.parametrize(
        "coord,need_mosaic",
        [(TileCoordinate(0, 0, 0), False), (TileCoordinate(7, 12, 9), False), (TileCoordinate(7, 12, 9, 3), True)],
    )
    def test_parse_reads_back(self, coord, need_mosaic):
        assert parse_tile_path(build_tile_url("/r", coord), need_mosaic=need_mosaic) == coord


class TestSourceTileUrl:
    """Tests for source_tile_url()."""

    def test_inserts_slash(self):
        assert source_tile_url("http://h/src", TileCoordinate(3, 4, 5)) == "http://h/src/3/4/5"

    def test_keeps_existing_slash(self):
        assert source_tile_url("http://h/src/", TileCoordinate(3, 4, 5)) == "http://h/src/3/4/5"

    def test_mosaic_and_suffix(self):
        url = source_tile_url("http://h/src", TileCoordinate(3, 4, 5, 1), ".jpg")
        assert url == "http://h/src/1/3/4/5.jpg"

    def test_empty_source(self):
        with pytest.raises(ParseError):
            source_tile_url("", TileCoordinate(0, 0, 0))
