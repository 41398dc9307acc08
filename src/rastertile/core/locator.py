"""Tile coordinates to and from URL paths.

Inbound paths end in ``[mosaic/]level/row/column``. Outbound URLs omit the
mosaic segment when the mosaic is 0, so a source serving a single mosaic
must be parsed with ``need_mosaic=False``.
"""

from __future__ import annotations

from typing import Sequence

from .errors import ParseError
from .types import TileCoordinate


def _segments(path: str | Sequence[str]) -> list[str]:
    if isinstance(path, str):
        path = path.split("/")
    return [segment for segment in path if segment]


def _index(segment: str, name: str) -> int:
    try:
        value = int(segment)
    except ValueError as exc:
        raise ParseError(f"Invalid {name} in tile path: {segment!r}") from exc
    if value < 0:
        raise ParseError(f"Negative {name} in tile path: {value}")
    return value


def parse_tile_path(path: str | Sequence[str], need_mosaic: bool = False) -> TileCoordinate:
    """Read a tile coordinate from the last segments of a URL path.

    The last three segments are column, row and level, read from the end.
    With ``need_mosaic`` a fourth segment before them is the mosaic.

    Args:
        path: URL path or its segments; empty segments are ignored
        need_mosaic: Whether the path carries a mosaic segment

    Raises:
        ParseError: If there are too few segments or one is not a
            non-negative integer
    """
    segments = _segments(path)
    needed = 4 if need_mosaic else 3
    if len(segments) < needed:
        raise ParseError(f"Tile path needs {needed} segments, got {len(segments)}")

    column = _index(segments.pop(), "column")
    row = _index(segments.pop(), "row")
    level = _index(segments.pop(), "level")
    mosaic = _index(segments.pop(), "mosaic") if need_mosaic else 0
    return TileCoordinate(level=level, row=row, column=column, mosaic=mosaic)


def build_tile_url(prefix: str, coord: TileCoordinate, suffix: str = "") -> str:
    """Build ``prefix/tile[/mosaic]/level/row/column`` followed by suffix."""
    mosaic = f"/{coord.mosaic}" if coord.mosaic else ""
    return f"{prefix}/tile{mosaic}/{coord.level}/{coord.row}/{coord.column}{suffix or ''}"


def source_tile_url(source: str, coord: TileCoordinate, suffix: str = "") -> str:
    """Build ``source/[mosaic/]level/row/column`` followed by suffix.

    A slash is inserted only when the source does not already end with one.

    Raises:
        ParseError: If source is empty
    """
    if not source:
        raise ParseError("Tile source URL is empty")
    slash = "" if source.endswith("/") else "/"
    mosaic = f"{coord.mosaic}/" if coord.mosaic else ""
    return f"{source}{slash}{mosaic}{coord.level}/{coord.row}/{coord.column}{suffix or ''}"
