"""Tests for the upstream fetcher (httpx MockTransport, no real network)."""

import asyncio

import httpx
import pytest

from firewatch.exceptions import UpstreamHttpError, UpstreamParseError, UpstreamTimeoutError
from firewatch.services.fetcher import UpstreamFetcher


def _fetcher(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamFetcher(client=client, **kwargs)


def _routes(table):
    def handler(request):
        entry = table[str(request.url)]
        if isinstance(entry, Exception):
            raise entry
        status, body = entry
        return httpx.Response(status, text=body)

    return handler


class TestUpstreamFetcher:
    def test_fetch_all_preserves_order(self):
        fetcher = _fetcher(
            _routes({"http://feeds.test/a": (200, "A"), "http://feeds.test/b": (200, "B")})
        )
        results = asyncio.run(fetcher.fetch_all(["http://feeds.test/b", "http://feeds.test/a"]))
        assert [r.body for r in results] == ["B", "A"]
        assert results[0].url == "http://feeds.test/b"

    def test_non_200_raises_http_error(self):
        fetcher = _fetcher(_routes({"http://feeds.test/a": (503, "down")}))
        with pytest.raises(UpstreamHttpError) as exc_info:
            asyncio.run(fetcher.fetch("http://feeds.test/a"))
        assert exc_info.value.status == 503
        assert exc_info.value.url == "http://feeds.test/a"

    def test_timeout_raises_timeout_error(self):
        fetcher = _fetcher(
            _routes({"http://feeds.test/slow": httpx.ReadTimeout("too slow")}), timeout=2.5
        )
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            asyncio.run(fetcher.fetch("http://feeds.test/slow"))
        assert exc_info.value.timeout == 2.5

    def test_transport_error_has_no_status(self):
        fetcher = _fetcher(_routes({"http://feeds.test/a": httpx.ConnectError("refused")}))
        with pytest.raises(UpstreamHttpError) as exc_info:
            asyncio.run(fetcher.fetch("http://feeds.test/a"))
        assert exc_info.value.status is None

    def test_one_failure_fails_the_batch(self):
        fetcher = _fetcher(
            _routes(
                {
                    "http://feeds.test/ok": (200, "{}"),
                    "http://feeds.test/slow": httpx.ReadTimeout("too slow"),
                }
            )
        )
        with pytest.raises(UpstreamTimeoutError):
            asyncio.run(fetcher.fetch_all(["http://feeds.test/ok", "http://feeds.test/slow"]))

    def test_fetch_json_decodes(self):
        fetcher = _fetcher(_routes({"http://feeds.test/a": (200, '{"features": []}')}))
        assert asyncio.run(fetcher.fetch_json(["http://feeds.test/a"])) == [{"features": []}]

    def test_fetch_json_invalid_raises_parse_error(self):
        fetcher = _fetcher(_routes({"http://feeds.test/a": (200, "<html>error</html>")}))
        with pytest.raises(UpstreamParseError):
            asyncio.run(fetcher.fetch_json(["http://feeds.test/a"]))

    def test_concurrency_bounded(self):
        active = 0
        peak = 0

        async def handler(request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return httpx.Response(200, text="x")

        fetcher = _fetcher(handler, max_concurrent=2)
        urls = [f"http://feeds.test/{i}" for i in range(6)]
        results = asyncio.run(fetcher.fetch_all(urls))
        assert len(results) == 6
        assert peak <= 2

    def test_trickling_body_hits_overall_deadline(self):
        async def trickle(reader, writer):
            await reader.readuntil(b"\r\n\r\n")
            writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: 8\r\nContent-Type: text/plain\r\n\r\n")
            try:
                for _ in range(8):
                    writer.write(b"x")
                    await writer.drain()
                    await asyncio.sleep(0.3)
            except ConnectionError:
                pass
            finally:
                writer.close()

        async def scenario():
            server = await asyncio.start_server(trickle, "127.0.0.1", 0)
            port = server.sockets[0].getsockname()[1]
            fetcher = UpstreamFetcher(timeout=0.5, client=httpx.AsyncClient(trust_env=False))
            loop = asyncio.get_running_loop()
            started = loop.time()
            try:
                with pytest.raises(UpstreamTimeoutError):
                    await fetcher.fetch(f"http://127.0.0.1:{port}/feed")
                return loop.time() - started
            finally:
                await fetcher.close()
                server.close()

        assert asyncio.run(scenario()) < 1.5
