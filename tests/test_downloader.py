import asyncio

import httpx
import pytest

from conftest import PDF_BYTES, html_response, pdf_response, route_transport, run
from filings_scraper.config import DownloadConfig
from filings_scraper.downloader import Downloader, FetchError

URL = "https://ir.example.com/files/report.pdf"


def _fetch(routes, config=None, url=URL):
    async def go():
        transport = route_transport(routes)
        async with Downloader(config or DownloadConfig(), transport=transport) as d:
            return await d.fetch_bytes(url)

    return run(go())


def test_fetch_bytes():
    assert _fetch({URL: pdf_response()}) == PDF_BYTES


def test_not_found_is_fetch_error():
    with pytest.raises(FetchError) as exc:
        _fetch({})
    assert exc.value.url == URL
    assert exc.value.detail == "404 Not Found"


def test_network_error_is_fetch_error():
    with pytest.raises(FetchError, match="connection reset"):
        _fetch({URL: httpx.ReadError("connection reset")})


def test_timeout_is_fetch_error():
    with pytest.raises(FetchError, match="timed out"):
        _fetch({URL: httpx.ConnectTimeout("connect")})


def test_html_instead_of_pdf_rejected():
    with pytest.raises(FetchError, match="Expected binary but got HTML"):
        _fetch({URL: html_response("<html>Please log in</html>")})


def test_declared_size_over_limit():
    resp = httpx.Response(200, content=b"x" * 100, headers={"content-type": "application/pdf"})
    with pytest.raises(FetchError, match="File too large"):
        _fetch({URL: resp}, DownloadConfig(max_file_size=10))


def test_client_recreated_after_close():
    async def go():
        d = Downloader(DownloadConfig(), transport=route_transport({URL: pdf_response()}))
        first = d.client
        await d.aclose()
        second = d.client
        await d.aclose()
        return first is second

    assert run(go()) is False


@pytest.mark.parametrize("url", [
    "https://ir.example.com:abc/report.pdf",
    "https://ir.example.com/" + "a" * 70000 + ".pdf",
    "https://ir.example.com/re\x01port.pdf",
])
def test_invalid_url_is_fetch_error(url):
    with pytest.raises(FetchError, match="invalid URL"):
        _fetch({}, url=url)


def test_slow_body_hits_total_timeout():
    async def trickle():
        for _ in range(50):
            await asyncio.sleep(0.05)
            yield b"x"

    def handler(request):
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=trickle())

    async def go():
        config = DownloadConfig(total_timeout=0.2)
        async with Downloader(config, transport=httpx.MockTransport(handler)) as d:
            return await d.fetch_bytes(URL)

    with pytest.raises(FetchError, match="0.2s total"):
        run(go())


def _fetch_html(url, extensions=None):
    transport = httpx.MockTransport(lambda request: html_response("<html>Please log in</html>"))

    async def go():
        kwargs = {"extensions": extensions} if extensions else {}
        async with Downloader(DownloadConfig(), transport=transport, **kwargs) as d:
            return await d.fetch_bytes(url)

    return run(go())


def test_html_rejected_when_url_has_fragment():
    with pytest.raises(FetchError, match="Expected binary but got HTML"):
        _fetch_html(URL + "#page=2")


def test_html_check_uses_configured_extensions():
    docx = "https://ir.example.com/files/report.docx"
    assert _fetch_html(docx) == b"<html>Please log in</html>"
    with pytest.raises(FetchError, match="Expected binary but got HTML"):
        _fetch_html(docx, extensions=[".pdf", ".docx"])
