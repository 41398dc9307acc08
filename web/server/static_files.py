"""Raw raster files (packed index and data) served with byte range support.

Remote packed sources on other hosts read ``tiles.idx`` and ``tiles.dat``
through these responses, one range per request.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from fastapi import Request
from fastapi.responses import FileResponse, Response, StreamingResponse

from rastertile.core.raster import RASTER_FILE
from rastertile.core.types import ByteRange
from rastertile.sources import DATA_FILE, INDEX_FILE

CHUNK_SIZE = 1024 * 1024

SERVED_FILES = {
    INDEX_FILE: "application/octet-stream",
    DATA_FILE: "application/octet-stream",
    RASTER_FILE: "application/json",
}


def parse_range_header(range_header: str, file_size: int) -> ByteRange | None:
    """First range of a ``Range: bytes=...`` header, clipped to the file.

    Handles ``start-end``, ``start-`` and the suffix form ``-length``.
    Returns None when the header is malformed or not satisfiable.
    """
    if not range_header or not range_header.startswith("bytes="):
        return None
    first = range_header[len("bytes="):].split(",", 1)[0].strip()
    start_text, sep, end_text = first.partition("-")
    if not sep:
        return None

    try:
        if not start_text:
            length = int(end_text)
            if length <= 0 or file_size == 0:
                return None
            length = min(length, file_size)
            return ByteRange(file_size - length, length)

        start = int(start_text)
        end = int(end_text) if end_text else file_size - 1
    except ValueError:
        return None

    if start >= file_size or start > end:
        return None
    end = min(end, file_size - 1)
    return ByteRange(start, end - start + 1)


def _iter_file_range(path: Path, byte_range: ByteRange) -> Iterable[bytes]:
    with path.open("rb") as handle:
        handle.seek(byte_range.offset)
        remaining = byte_range.size
        while remaining > 0:
            chunk = handle.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


def build_file_response(path: Path, request: Request) -> Response:
    file_size = path.stat().st_size
    media_type = SERVED_FILES.get(path.name, "application/octet-stream")
    headers = {"Accept-Ranges": "bytes"}
    if path.name in (INDEX_FILE, DATA_FILE):
        headers["Cache-Control"] = "public, max-age=31536000, immutable"

    range_header = request.headers.get("range")
    if not range_header:
        return FileResponse(path, media_type=media_type, headers=headers)

    byte_range = parse_range_header(range_header, file_size)
    if byte_range is None:
        headers["Content-Range"] = f"bytes */{file_size}"
        return Response(status_code=416, headers=headers)

    end = byte_range.offset + byte_range.size - 1
    headers["Content-Range"] = f"bytes {byte_range.offset}-{end}/{file_size}"
    headers["Content-Length"] = str(byte_range.size)
    return StreamingResponse(
        _iter_file_range(path, byte_range),
        status_code=206,
        media_type=media_type,
        headers=headers,
    )
