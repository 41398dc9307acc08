from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from rastertile.fetch import RequestsFetcher, TileFetcher

from .config import ServerConfig, load_config
from .routes.rasters import build_raster_index, create_rasters_router

logger = logging.getLogger(__name__)


def create_app(config: ServerConfig | None = None, fetcher: TileFetcher | None = None) -> FastAPI:
    config = config or load_config()
    # Stored gzip payloads pass through; the tile response decides per client
    fetcher = fetcher or TileFetcher(RequestsFetcher(), gunzip=False)
    rasters = build_raster_index(config.raster_dirs, fetcher)
    logger.info("Serving %d raster(s) from %s", len(rasters), ", ".join(map(str, config.raster_dirs)))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        for record in rasters.values():
            record.source.close()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "Content-Range", "Accept-Ranges", "Content-Length"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.state.config = config
    app.state.rasters = rasters

    app.include_router(create_rasters_router(rasters))

    return app


app = create_app()


def main() -> None:
    import uvicorn

    config = load_config()
    uvicorn.run(
        "web.server.main:app",
        host=config.host,
        port=config.port,
    )


if __name__ == "__main__":
    main()
