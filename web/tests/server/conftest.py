from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Mapping

import pytest
from fastapi.testclient import TestClient

from raster_samples import EMPTY_TILE, tile_bytes
from rastertile.core.raster import TiledRaster
from rastertile.fetch import TileFetcher
from rastertile.fetch.delegate import DelegateResponse
from rastertile.sources import pack_tiles
from web.server.config import ServerConfig
from web.server.main import create_app
from web.server.routes.rasters import _raster_id_for_path


class FakeTileService:
    """Delegate standing in for a remote tile service."""

    def __init__(self) -> None:
        self.status = 200
        self.calls: list[str] = []

    def fetch(self, url: str, headers: Mapping[str, str]) -> DelegateResponse:
        self.calls.append(url)
        if self.status != 200:
            return DelegateResponse(self.status, b"", {})
        return DelegateResponse(200, tile_bytes(9, 9, 9), {"etag": '"00000000000ab"'})


@pytest.fixture()
def raster_root(tmp_path: Path) -> Path:
    root = tmp_path / "rasters"
    root.mkdir()

    # 512x256 in 256 pixel tiles: levels 1x1 and 2x1
    sample = root / "sample.raster"
    sample.mkdir()
    (sample / "raster.json").write_text(
        json.dumps(
            {
                "size": [512, 256],
                "page_size": [256, 256],
                "format": "image/jpeg",
                "etag_seed": "0000000000077",
                "empty_tile": "empty.jpg",
            }
        )
    )
    (sample / "empty.jpg").write_bytes(EMPTY_TILE)
    tiles = tmp_path / "tiles"
    (tiles / "0").mkdir(parents=True)
    (tiles / "1").mkdir()
    (tiles / "0" / "0_0.jpg").write_bytes(tile_bytes(0, 0, 0))
    # stored gzip tile
    (tiles / "1" / "0_0.gz").write_bytes(gzip.compress(tile_bytes(1, 0, 0)))
    raster = TiledRaster.from_dict({"size": [512, 256], "page_size": [256, 256]})
    pack_tiles(tiles, raster, sample)

    remote = root / "remote.raster"
    remote.mkdir()
    (remote / "raster.json").write_text(
        json.dumps({"size": [256, 256], "page_size": [256, 256], "source": "http://tiles.example/src"})
    )

    broken = root / "broken.raster"
    broken.mkdir()
    (broken / "raster.json").write_text("{invalid json")

    (root / "incomplete.raster").mkdir()
    return root


@pytest.fixture()
def tile_service() -> FakeTileService:
    return FakeTileService()


@pytest.fixture()
def app(raster_root: Path, tile_service: FakeTileService):
    return create_app(
        ServerConfig(raster_dirs=[raster_root]),
        fetcher=TileFetcher(tile_service, gunzip=False),
    )


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def sample_id(raster_root: Path) -> str:
    return _raster_id_for_path(raster_root / "sample.raster")


@pytest.fixture()
def remote_id(raster_root: Path) -> str:
    return _raster_id_for_path(raster_root / "remote.raster")
