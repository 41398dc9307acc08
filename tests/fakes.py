"""In-memory delegates and tile bytes shared by the tests."""

from __future__ import annotations

from typing import Mapping

from rastertile.fetch.delegate import DelegateResponse

JPEG_HEAD = b"\xff\xd8\xff\xe0"


def make_tile(level: int, row: int, column: int, mosaic: int = 0) -> bytes:
    """JPEG-signed tile bytes, unique per coordinate and longer than 128 bytes."""
    return JPEG_HEAD + f"tile {mosaic}/{level}/{row}/{column};".encode() * 12


def response(status: int = 200, body: bytes = b"", etag: str | None = None) -> DelegateResponse:
    headers = {"etag": etag} if etag is not None else {}
    return DelegateResponse(status_code=status, body=body, headers=headers)


class ScriptedDelegate:
    """Delegate answering with prepared responses, in order.

    The last entry repeats once the others are used up. Exception entries
    are raised instead of returned.
    """

    def __init__(self, *responses: DelegateResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, dict[str, str]]] = []

    def fetch(self, url: str, headers: Mapping[str, str]) -> DelegateResponse:
        self.calls.append((url, dict(headers)))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RangeDelegate:
    """Delegate serving in-memory blobs by URL, honouring ``Range`` headers."""

    def __init__(self, files: Mapping[str, bytes]) -> None:
        self.files = dict(files)
        self.calls: list[tuple[str, dict[str, str]]] = []

    def fetch(self, url: str, headers: Mapping[str, str]) -> DelegateResponse:
        self.calls.append((url, dict(headers)))
        blob = self.files.get(url)
        if blob is None:
            return response(404)
        range_header = headers.get("Range")
        if not range_header:
            return response(200, blob)
        start, end = range_header[len("bytes="):].split("-")
        return response(206, blob[int(start):int(end) + 1])
