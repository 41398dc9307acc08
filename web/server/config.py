"""Tile server settings.

Environment Variables:
    RASTERTILE_WEB_RASTER_DIRS: Directories searched for ``*.raster`` directories,
        separated by os.pathsep (default: current directory)
    RASTERTILE_WEB_HOST: Bind address (default: 0.0.0.0)
    RASTERTILE_WEB_PORT: Bind port (default: 8000)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from rastertile.config import _get_env_int, _get_env_str

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class ServerConfig:
    """Where to find rasters and where to listen.

    Attributes:
        raster_dirs: Roots scanned recursively for raster directories
        host: Bind address
        port: Bind port
    """

    raster_dirs: list[Path] = field(default_factory=list)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def _raster_roots(value: str) -> list[Path]:
    roots = []
    for part in value.split(os.pathsep):
        part = part.strip()
        if part:
            roots.append(Path(part).expanduser().resolve())
    return roots


def load_config() -> ServerConfig:
    """Read the server settings from the environment."""
    raster_dirs = _raster_roots(_get_env_str("RASTERTILE_WEB_RASTER_DIRS", ""))
    if not raster_dirs:
        raster_dirs = [Path.cwd().resolve()]

    port = _get_env_int("RASTERTILE_WEB_PORT", DEFAULT_PORT)
    if not 0 < port < 65536:
        logger.warning("RASTERTILE_WEB_PORT=%d is out of range, using %d", port, DEFAULT_PORT)
        port = DEFAULT_PORT

    return ServerConfig(
        raster_dirs=raster_dirs,
        host=_get_env_str("RASTERTILE_WEB_HOST", DEFAULT_HOST),
        port=port,
    )
