"""HTTP responses for tiles: content type, ETag and gzip handling."""

from __future__ import annotations

import zlib

from fastapi import HTTPException, Request
from fastapi.responses import Response

from rastertile.core.codecs import ImageFormat, detect_format, is_gzip
from rastertile.core.fingerprint import etag_matches, quote

OCTET_STREAM = "application/octet-stream"


def _media_type_for(data: bytes) -> str:
    fmt = detect_format(data)
    if fmt in (ImageFormat.JPEG, ImageFormat.PNG):
        return fmt.value
    # LERC and everything else
    return OCTET_STREAM


def _accepts_gzip(request: Request) -> bool:
    # A missing Accept-Encoding counts as no gzip support
    return "gzip" in request.headers.get("accept-encoding", "")


def build_tile_response(data: bytes, etag: str, request: Request) -> Response:
    """Send tile bytes with a quoted ETag, answering If-None-Match with 304.

    Stored gzip payloads go out with ``Content-Encoding: gzip`` to clients
    that accept it and are inflated for the others.
    """
    headers = {"ETag": quote(etag)}
    if etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=304, headers=headers)

    media_type = _media_type_for(data)
    if is_gzip(data):
        if _accepts_gzip(request):
            headers["Content-Encoding"] = "gzip"
        else:
            try:
                data = zlib.decompress(data, 16 + zlib.MAX_WBITS)
            except zlib.error as exc:
                raise HTTPException(status_code=500, detail="ungzip error") from exc
            media_type = _media_type_for(data)

    return Response(content=data, media_type=media_type, headers=headers)


def build_empty_tile_response(empty_tile: bytes | None, etag: str, request: Request) -> Response:
    """Answer for a tile that is not stored: the empty tile, or 404 without one."""
    if empty_tile is None:
        return Response(status_code=404)
    return build_tile_response(empty_tile, etag, request)
