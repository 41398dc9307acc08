from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from rastertile.core.errors import BufferTooSmallError, ConfigError, ParseError
from rastertile.core.locator import parse_tile_path
from rastertile.core.raster import RASTER_FILE, TiledRaster, load_raster
from rastertile.fetch import TileFetcher
from rastertile.sources import TileSource, open_source

from ..static_files import SERVED_FILES, build_file_response
from ..tile_response import build_empty_tile_response, build_tile_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterRecord:
    raster_id: str
    name: str
    dir_path: Path
    raster: TiledRaster
    source: TileSource


def _raster_id_for_path(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()
    return digest[:12]


def _iter_raster_dirs(raster_dirs: Iterable[Path]) -> Iterable[Path]:
    for base_dir in raster_dirs:
        if not base_dir.exists():
            logger.warning("Raster dir does not exist: %s", base_dir)
            continue
        yield from sorted(base_dir.rglob("*.raster"))


def build_raster_index(raster_dirs: Iterable[Path], fetcher: TileFetcher) -> dict[str, RasterRecord]:
    rasters: dict[str, RasterRecord] = {}

    for raster_dir in _iter_raster_dirs(raster_dirs):
        if not (raster_dir / RASTER_FILE).exists():
            logger.warning("Skipping raster without %s: %s", RASTER_FILE, raster_dir)
            continue

        try:
            raster = load_raster(raster_dir)
            source = open_source(raster, raster_dir, fetcher)
        except ConfigError as exc:
            logger.warning("Skipping invalid raster %s: %s", raster_dir, exc)
            continue

        raster_id = _raster_id_for_path(raster_dir)
        rasters[raster_id] = RasterRecord(
            raster_id=raster_id,
            name=raster_dir.stem,
            dir_path=raster_dir,
            raster=raster,
            source=source,
        )

    return rasters


def _get_record(rasters: dict[str, RasterRecord], raster_id: str) -> RasterRecord:
    record = rasters.get(raster_id)
    if not record:
        raise HTTPException(status_code=404, detail="Raster not found")
    return record


def create_rasters_router(rasters: dict[str, RasterRecord]) -> APIRouter:
    router = APIRouter()

    @router.get("/api/rasters")
    def list_rasters() -> JSONResponse:
        response = []
        for record in rasters.values():
            raster = record.raster
            response.append(
                {
                    "id": record.raster_id,
                    "name": record.name,
                    "size": list(raster.size),
                    "pageSize": list(raster.page_size),
                    "levels": raster.pyramid.level_count - raster.pyramid.skip,
                    "format": raster.format.value,
                    "tileUrl": f"/rasters/{record.raster_id}/tile",
                }
            )
        return JSONResponse(
            content=response,
            headers={"Cache-Control": "public, max-age=60"},
        )

    @router.get("/api/rasters/{raster_id}/levels")
    def get_levels(raster_id: str) -> JSONResponse:
        pyramid = _get_record(rasters, raster_id).raster.pyramid
        levels = [
            {
                "level": index - pyramid.skip,
                "width": info.width,
                "height": info.height,
                "resolution": [info.resolution_x, info.resolution_y],
                "tileOffset": info.tile_offset,
            }
            for index, info in enumerate(pyramid)
            if index >= pyramid.skip
        ]
        return JSONResponse(
            content={"skip": pyramid.skip, "mosaics": pyramid.mosaics, "levels": levels},
            headers={"Cache-Control": "public, max-age=3600"},
        )

    @router.api_route("/rasters/{raster_id}/tile/{tile_path:path}", methods=["GET", "HEAD"])
    def get_tile(raster_id: str, tile_path: str, request: Request) -> Response:
        record = _get_record(rasters, raster_id)
        raster = record.raster
        try:
            coord = parse_tile_path(tile_path, need_mosaic=raster.mosaics > 1)
        except ParseError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        buffer = bytearray(raster.max_tile_size)
        result = record.source.read(coord, buffer)
        if not result.succeeded:
            logger.error("Tile %s of %s failed: %s", coord, record.name, result.error_message)
            status = 500 if isinstance(result.error, BufferTooSmallError) else 502
            raise HTTPException(status_code=status, detail=result.error_message)

        if result.size == 0:
            return build_empty_tile_response(raster.empty_tile, raster.missing_etag, request)
        return build_tile_response(result.data, result.fingerprint, request)

    @router.api_route("/rasters/{raster_id}/files/{file_name}", methods=["GET", "HEAD"])
    def get_raster_file(raster_id: str, file_name: str, request: Request) -> Response:
        record = _get_record(rasters, raster_id)
        path = record.dir_path / file_name
        if file_name not in SERVED_FILES or not path.is_file():
            raise HTTPException(status_code=404, detail="File not found")
        return build_file_response(path, request)

    return router
