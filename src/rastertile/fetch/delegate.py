"""Delegate fetch primitives: the one-request capability the engine builds on."""

from __future__ import annotations

import logging
from typing import Mapping, NamedTuple, Protocol
from urllib.parse import urljoin

import requests

from rastertile.config import FETCH_TIMEOUT
from rastertile.core.errors import TransportError

logger = logging.getLogger(__name__)


class DelegateResponse(NamedTuple):
    """Outcome of one delegated request.

    Attributes:
        status_code: HTTP status of the response
        body: Response payload, exactly as stored by the source
        headers: Response headers, lower-case names
    """

    status_code: int
    body: bytes
    headers: Mapping[str, str]


class FetchPrimitive(Protocol):
    def fetch(self, url: str, headers: Mapping[str, str]) -> DelegateResponse:
        """Issue one request.

        Raises:
            TransportError: If the request did not complete
        """
        ...


class RequestsFetcher:
    """Delegate built on ``requests``.

    Relative URLs are resolved against ``base_url``, which lets tile sources
    address their neighbours on the same host with plain paths.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = FETCH_TIMEOUT,
    ) -> None:
        """
        Params:
            base_url: prefix for relative URLs
            session: optional requests.Session for connection reuse
            timeout: seconds before a request counts as failed
        """
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, url: str, headers: Mapping[str, str]) -> DelegateResponse:
        if self.base_url:
            url = urljoin(self.base_url, url)
        # Identity encoding keeps gzip payloads intact; the engine inflates them
        request_headers = {"Accept-Encoding": "identity", **headers}
        try:
            r = self.session.get(url, headers=request_headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug("Request to %s failed: %s", url, e)
            raise TransportError(f"request failed: {e}") from e
        return DelegateResponse(
            status_code=r.status_code,
            body=r.content,
            headers={k.lower(): v for k, v in r.headers.items()},
        )
