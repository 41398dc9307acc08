"""Error kinds raised or reported by rastertile."""

from __future__ import annotations


class RasterTileError(Exception):
    """Base class for all rastertile errors."""


class ParseError(RasterTileError, ValueError):
    """Malformed tile coordinate, URL path or fingerprint."""


class ConfigError(RasterTileError):
    """Raster configuration that cannot produce a serviceable pyramid."""


class FetchError(RasterTileError):
    """Base class for failures of a single tile fetch.

    The fetch engine never raises these; it stores them in
    ``FetchResult.error``.
    """


class TransportError(FetchError):
    """The delegate request did not complete."""


class RemoteStatusError(FetchError):
    """The delegate answered with a status that is neither success nor partial content."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Remote responds with {status_code}")


class RetriesExhaustedError(FetchError):
    """Repeated partial-content responses used up every retry."""


class BufferTooSmallError(FetchError):
    """Raw or decompressed payload does not fit the caller's buffer."""


class DecompressionError(FetchError):
    """A gzip payload could not be inflated."""
