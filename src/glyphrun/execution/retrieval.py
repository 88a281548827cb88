"""Retrieval — fetch externally referenced fragment sources.

Supports three kinds of reference:

    http(s)://...      httpx AsyncClient, non-2xx is a failure
    data:[type][;base64],...   decoded in-process
    file://... / path  read from disk (off the event loop)

Every failure surfaces as :class:`RetrievalFailure` carrying the URL and,
for HTTP, the status code.  There is no retry; by default there is also no
timeout, so a stalled server stalls the run that is waiting on it.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path
from urllib.parse import unquote_to_bytes, urlparse
from urllib.request import url2pathname

import httpx

from glyphrun.core.errors import RetrievalFailure
from glyphrun.core.logging import get_logger

logger = get_logger(__name__)


class Retriever:
    """Asynchronous ``fetch(uri) -> bytes``.

    Parameters
    ----------
    timeout : float | None
        Seconds before an HTTP request gives up; ``None`` waits forever.
    allow_network : bool
        When false, http(s) references fail without touching the network.
    transport : httpx.AsyncBaseTransport | None
        Custom transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        allow_network: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.allow_network = allow_network
        self._transport = transport

    async def fetch(self, uri: str) -> bytes:
        scheme = urlparse(uri).scheme.lower()
        logger.debug("retrieval.started", url=uri, scheme=scheme or "path")
        if scheme in ("http", "https"):
            data = await self._fetch_http(uri)
        elif scheme == "data":
            data = self._decode_data_uri(uri)
        elif scheme in ("file", ""):
            data = await self._read_file(uri, scheme)
        else:
            raise RetrievalFailure(f"Unsupported reference scheme '{scheme}'").with_context(url=uri)
        logger.debug("retrieval.completed", url=uri, size=len(data))
        return data

    async def _fetch_http(self, uri: str) -> bytes:
        if not self.allow_network:
            raise RetrievalFailure(f"Network retrieval disabled: {uri}").with_context(url=uri)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(uri, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise RetrievalFailure(
                f"HTTP {status} fetching {uri}", cause=e
            ).with_context(url=uri, http_status=status) from e
        except httpx.HTTPError as e:
            raise RetrievalFailure(f"Could not fetch {uri}: {e}", cause=e).with_context(url=uri) from e
        return response.content

    @staticmethod
    def _decode_data_uri(uri: str) -> bytes:
        header, sep, payload = uri[len("data:"):].partition(",")
        if not sep:
            raise RetrievalFailure("Malformed data URI: missing ','").with_context(url=uri[:64])
        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as e:
                raise RetrievalFailure(f"Malformed base64 data URI: {e}", cause=e).with_context(
                    url=uri[:64]
                ) from e
        return unquote_to_bytes(payload)

    @staticmethod
    async def _read_file(uri: str, scheme: str) -> bytes:
        path = Path(url2pathname(urlparse(uri).path)) if scheme == "file" else Path(uri)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise RetrievalFailure(f"Could not read {path}: {e.strerror or e}", cause=e).with_context(
                url=str(path)
            ) from e
