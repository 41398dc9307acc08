"""Tile fetch engine.

Retrieves tile bytes through a delegate fetch primitive into a buffer owned
by the caller. Range requests that come back short are retried a bounded
number of times, a fingerprint is taken from the source ETag or from the
payload, and gzip payloads are inflated in place.

Errors are reported in the returned result, never raised.
"""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass
from typing import NamedTuple

from rastertile.config import FETCH_RETRIES, USER_AGENT
from rastertile.core import fingerprint
from rastertile.core.codecs import is_gzip
from rastertile.core.errors import (
    BufferTooSmallError,
    DecompressionError,
    FetchError,
    ParseError,
    RemoteStatusError,
    RetriesExhaustedError,
    TransportError,
)
from rastertile.core.locator import build_tile_url
from rastertile.core.types import ByteRange, TileCoordinate

from .delegate import DelegateResponse, FetchPrimitive

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_PARTIAL_CONTENT = 206
HTTP_REQUEST_ENTITY_TOO_LARGE = 413
HTTP_INTERNAL_SERVER_ERROR = 500


@dataclass
class FetchResult:
    """Outcome of one fetch.

    Attributes:
        buffer: The caller's buffer; the first ``size`` bytes are the payload
        size: Payload length
        fingerprint: 13 character fingerprint of the payload
        status_code: Status of the last delegate response, 0 if there was none
        error: The failure, None on success
    """

    buffer: bytearray | memoryview
    size: int = 0
    fingerprint: str | None = None
    status_code: int = 0
    error: FetchError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @property
    def data(self) -> bytes:
        """A copy of the payload."""
        return bytes(memoryview(self.buffer)[: self.size])

    def raise_for_error(self) -> None:
        """Raise the stored error, if any."""
        if self.error is not None:
            raise self.error


class DelegateResult(NamedTuple):
    """Outcome of a single pass-through request.

    Attributes:
        status: HTTP status; 413 when the payload overflowed the buffer
        size: Bytes written into the buffer
        etag: Source ETag header, if any
    """

    status: int
    size: int
    etag: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == HTTP_OK


class _Transfer(NamedTuple):
    size: int
    status: int
    validator: str | None


def _writable(buffer: bytearray | memoryview) -> memoryview:
    view = memoryview(buffer).cast("B")
    if view.readonly:
        raise TypeError("Fetch buffer must be writable")
    return view


def _inflate(payload: bytes, limit: int) -> bytes | None:
    """Inflate a gzip payload into at most limit bytes.

    Returns:
        The inflated bytes, or None if they need more than limit bytes

    Raises:
        zlib.error: If the payload is not a complete gzip stream
    """
    d = zlib.decompressobj(16 + zlib.MAX_WBITS)
    out = d.decompress(payload, limit + 1)
    if len(out) > limit:
        return None
    if not d.eof:
        raise zlib.error("incomplete gzip stream")
    return out


class TileFetcher:
    """Fetches tiles through a delegate, one synchronous call at a time.

    The fetcher holds no per-call state, so one instance may serve
    concurrent callers as long as each brings its own buffer.
    """

    def __init__(
        self,
        delegate: FetchPrimitive,
        max_retries: int = FETCH_RETRIES,
        gunzip: bool = True,
        user_agent: str | None = USER_AGENT,
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.delegate = delegate
        self.max_retries = max_retries
        self.gunzip = gunzip
        self.user_agent = user_agent

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch(
        self,
        url: str,
        buffer: bytearray | memoryview,
        byte_range: ByteRange | None = None,
    ) -> FetchResult:
        """Fetch a URL, or a byte range of it, into buffer.

        Args:
            url: Target URL
            buffer: Writable destination; its length is the capacity
            byte_range: Optional range; success needs exactly range.size bytes

        Returns:
            FetchResult with the payload size and fingerprint, or the error
        """
        view = _writable(buffer)
        result = FetchResult(buffer=buffer)
        try:
            transfer = self._transfer(url, view, byte_range, self.max_retries, result)
        except FetchError as e:
            logger.debug("Fetch of %s failed: %s", url, e)
            result.error = e
            return result

        result.size = transfer.size
        result.fingerprint = self._fingerprint(transfer.validator, view[: transfer.size])

        if self.gunzip and is_gzip(view[: transfer.size]):
            try:
                result.size = self._gunzip(view, transfer.size)
            except FetchError as e:
                logger.debug("Inflating %s failed: %s", url, e)
                result.error = e
        return result

    def range_read(
        self,
        url: str,
        offset: int,
        buffer: bytearray | memoryview,
        tries: int | None = None,
    ) -> tuple[int, str | None]:
        """Read exactly ``len(buffer)`` bytes starting at offset.

        No fingerprint and no gzip handling.

        Returns:
            Tuple of (bytes_read, error_message); (0, message) on failure
        """
        view = _writable(buffer)
        byte_range = ByteRange(offset, len(view))
        try:
            transfer = self._transfer(
                url, view, byte_range, tries if tries is not None else self.max_retries
            )
        except FetchError as e:
            logger.debug("Range read of %s at %d failed: %s", url, offset, e)
            return 0, str(e)
        return transfer.size, None

    def get_response(self, url: str, buffer: bytearray | memoryview) -> DelegateResult:
        """Issue one request, no range and no retry, and capture the payload.

        A payload that does not fit is truncated to the buffer and reported
        with status 413.
        """
        view = _writable(buffer)
        try:
            response = self.delegate.fetch(url, self._headers(None))
        except TransportError as e:
            logger.debug("Request to %s failed: %s", url, e)
            return DelegateResult(HTTP_INTERNAL_SERVER_ERROR, 0)

        if response.status_code != HTTP_OK:
            return DelegateResult(response.status_code, 0, response.headers.get("etag"))

        size = min(len(response.body), len(view))
        view[:size] = response.body[:size]
        status = HTTP_OK if size == len(response.body) else HTTP_REQUEST_ENTITY_TOO_LARGE
        return DelegateResult(status, size, response.headers.get("etag"))

    def get_remote_tile(
        self,
        remote: str,
        coord: TileCoordinate,
        buffer: bytearray | memoryview,
        suffix: str = "",
    ) -> DelegateResult:
        """Fetch ``remote/tile/[m/]l/r/c`` with get_response."""
        return self.get_response(build_tile_url(remote, coord, suffix), buffer)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _headers(self, byte_range: ByteRange | None) -> dict[str, str]:
        headers = {}
        if byte_range is not None:
            headers["Range"] = byte_range.header
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    def _transfer(
        self,
        url: str,
        view: memoryview,
        byte_range: ByteRange | None,
        tries: int,
        result: FetchResult | None = None,
    ) -> _Transfer:
        """Run delegate requests until the payload is complete.

        Raises:
            FetchError: On transport failure, overflow, unexpected status or
                when partial responses use up every try
        """
        headers = self._headers(byte_range)
        capacity = len(view)

        while True:
            response: DelegateResponse = self.delegate.fetch(url, headers)
            status = response.status_code
            if result is not None:
                result.status_code = status

            if status not in (HTTP_OK, HTTP_PARTIAL_CONTENT):
                raise RemoteStatusError(status)

            size = len(response.body)
            if size > capacity:
                raise BufferTooSmallError(
                    f"Response of {size} bytes does not fit buffer of {capacity} bytes"
                )
            view[:size] = response.body

            if byte_range is not None and size == byte_range.size:
                break
            if byte_range is None and status == HTTP_OK:
                break

            if status == HTTP_PARTIAL_CONTENT:
                tries -= 1
                if tries <= 0:
                    raise RetriesExhaustedError("Retries exhausted")
                logger.debug("Partial content from %s (%d bytes), %d tries left", url, size, tries)
                continue

            # A whole object where a range was asked for
            raise RemoteStatusError(
                status, f"Remote responds with {status} but sends {size} of {byte_range.size} bytes"
            )

        return _Transfer(size, status, response.headers.get("etag"))

    def _fingerprint(self, validator: str | None, payload: memoryview) -> str:
        if validator:
            try:
                value, flag = fingerprint.decode(validator)
                return fingerprint.encode(value, flag)
            except ParseError:
                logger.warning("Ignoring malformed ETag %r", validator)
        return fingerprint.encode(fingerprint.synthesize(payload) or 0)

    def _gunzip(self, view: memoryview, size: int) -> int:
        """Replace a gzip payload at the start of view with its inflated form.

        The inflated data must fit in the unused tail of the buffer; failing
        that, in a scratch buffer as large as the whole buffer.

        Returns:
            The inflated size

        Raises:
            BufferTooSmallError: If the inflated data exceeds the buffer
            DecompressionError: If the payload is not valid gzip
        """
        capacity = len(view)
        payload = bytes(view[:size])
        try:
            out = None
            if capacity > size:
                out = _inflate(payload, capacity - size)
            if out is None:
                out = _inflate(payload, capacity)
        except zlib.error as e:
            raise DecompressionError("ungzip error") from e
        if out is None:
            raise BufferTooSmallError("Uncompressed output buffer too small")
        view[: len(out)] = out
        return len(out)
