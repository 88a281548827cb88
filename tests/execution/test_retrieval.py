"""Tests for glyphrun.execution.retrieval — http, data and file references."""

from __future__ import annotations

import base64
from pathlib import Path

import httpx
import pytest

from glyphrun.core.errors import ErrorCategory, RetrievalFailure
from glyphrun.execution.retrieval import Retriever


def _transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(str(request.url), httpx.Response(404))

    return httpx.MockTransport(handler)


class TestHttp:
    @pytest.mark.asyncio
    async def test_fetch_ok(self):
        retriever = Retriever(
            transport=_transport({"https://cdn.example/fib.wasm": httpx.Response(200, content=b"\x00asm")})
        )
        assert await retriever.fetch("https://cdn.example/fib.wasm") == b"\x00asm"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        retriever = Retriever(
            transport=_transport(
                {
                    "https://cdn.example/old.wasm": httpx.Response(
                        301, headers={"Location": "https://cdn.example/new.wasm"}
                    ),
                    "https://cdn.example/new.wasm": httpx.Response(200, content=b"new"),
                }
            )
        )
        assert await retriever.fetch("https://cdn.example/old.wasm") == b"new"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        retriever = Retriever(transport=_transport({}))
        with pytest.raises(RetrievalFailure, match="HTTP 404") as exc_info:
            await retriever.fetch("https://cdn.example/missing.wasm")
        error = exc_info.value
        assert error.category == ErrorCategory.RETRIEVAL
        assert error.context.http_status == 404
        assert error.context.url == "https://cdn.example/missing.wasm"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        retriever = Retriever(transport=httpx.MockTransport(handler))
        with pytest.raises(RetrievalFailure, match="Could not fetch"):
            await retriever.fetch("http://localhost:9/fib.wasm")

    @pytest.mark.asyncio
    async def test_network_disabled(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        retriever = Retriever(allow_network=False, transport=httpx.MockTransport(handler))
        with pytest.raises(RetrievalFailure, match="Network retrieval disabled"):
            await retriever.fetch("https://cdn.example/fib.wasm")
        assert calls == []


class TestDataUri:
    @pytest.mark.asyncio
    async def test_base64(self):
        payload = base64.b64encode(b"\x00asm\x01\x00\x00\x00").decode()
        data = await Retriever().fetch(f"data:application/wasm;base64,{payload}")
        assert data == b"\x00asm\x01\x00\x00\x00"

    @pytest.mark.asyncio
    async def test_percent_encoded(self):
        assert await Retriever().fetch("data:text/plain,fibonacci(10)%20") == b"fibonacci(10) "

    @pytest.mark.asyncio
    async def test_bad_base64(self):
        with pytest.raises(RetrievalFailure, match="base64"):
            await Retriever().fetch("data:;base64,@@@")

    @pytest.mark.asyncio
    async def test_missing_comma(self):
        with pytest.raises(RetrievalFailure, match="missing ','"):
            await Retriever().fetch("data:nothing")


class TestFiles:
    @pytest.mark.asyncio
    async def test_plain_path(self, tmp_path: Path):
        path = tmp_path / "fib.wat"
        path.write_bytes(b"(module)")
        assert await Retriever().fetch(str(path)) == b"(module)"

    @pytest.mark.asyncio
    async def test_file_uri(self, tmp_path: Path):
        path = tmp_path / "fib.wat"
        path.write_bytes(b"(module)")
        assert await Retriever().fetch(path.as_uri()) == b"(module)"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path):
        with pytest.raises(RetrievalFailure, match="Could not read") as exc_info:
            await Retriever().fetch(str(tmp_path / "absent.wasm"))
        assert exc_info.value.context.url == str(tmp_path / "absent.wasm")

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self):
        with pytest.raises(RetrievalFailure, match="Unsupported reference scheme 'ftp'"):
            await Retriever().fetch("ftp://example.org/fib.wasm")
