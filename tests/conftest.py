"""Shared fixtures: a routed httpx.MockTransport and a test config."""

import asyncio

import httpx
import pytest

from filings_scraper.config import ApiConfig, AppConfig

PDF_BYTES = b"%PDF-1.4\n% fake test document\n" + b"0" * 2048


def pdf_response(body: bytes = PDF_BYTES) -> httpx.Response:
    return httpx.Response(200, content=body, headers={"content-type": "application/pdf"})


def html_response(html: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=html, headers={"content-type": "text/html; charset=utf-8"})


def route_transport(routes: dict) -> httpx.MockTransport:
    """Answer requests from a {url: response or exception} map.

    Unknown URLs get a 404. Requested URLs are recorded on ``.calls``.
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        result = routes.get(url)
        if result is None:
            return httpx.Response(404)
        if isinstance(result, Exception):
            raise result
        # the client binds responses to requests, hand out a fresh one each time
        return httpx.Response(result.status_code, headers=result.headers, content=result.content)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


def run(coro):
    return asyncio.run(coro)


async def collect(job) -> bytes:
    chunks = []
    async for chunk in job:
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        log_dir=str(tmp_path / "logs"),
        api=ApiConfig(scan_rate_limit="1000/minute", download_rate_limit="1000/minute"),
    )


SEED_URL = "https://ir.example.com/investors"

SEED_PAGE = """
<html><body>
  <h2>Reports</h2>
  <a href="/files/2023-annual-report.pdf">Annual Report 2023</a>
  <a href="https://ir.example.com/files/2023-annual-report.pdf">Annual Report (PDF)</a>
  <a href="https://cdn.example.com/results/q1.pdf">Q1 FY24 Results</a>
  <a href="https://evilexample.com/annual.pdf">Annual Report 2023 (mirror)</a>
  <a href="https://other.org/report.pdf">Partner report</a>
  <a href="/investor/overview">Overview</a>
  <a href="javascript:void(0)">Print</a>
  <a href="mailto:ir@example.com">Contact IR</a>
  <a href="/files/slides.PDF?download=1"></a>
</body></html>
"""
