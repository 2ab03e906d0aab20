"""FastAPI server: document discovery and streamed ZIP download."""

import json
import logging
import os
from typing import Optional
from urllib.parse import urlparse

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, field_validator
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.background import BackgroundTask

from filings_scraper.archive import ArchiveAssembler, ArchiveJob, sanitize_title
from filings_scraper.config import AppConfig, load_config
from filings_scraper.downloader import Downloader
from filings_scraper.guard import derive_root_domain, normalize_root_domain
from filings_scraper.logger import setup_logger
from filings_scraper.models import ArchiveItem
from filings_scraper.scanner import PageScanner

load_dotenv()

logger = logging.getLogger("filings_scraper")


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
        parsed.port  # raises on a non-numeric or out-of-range port
        # the fetch layer rejects over-long URLs and control characters
        httpx.URL(value)
    except (ValueError, httpx.InvalidURL):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


# --- Models ---

class ScanRequest(BaseModel):
    url: str


class DocumentIn(BaseModel):
    url: str
    title: str
    year: Optional[str] = None
    type: str

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not _is_http_url(v):
            raise ValueError("not an http(s) URL")
        return v

    @field_validator("year", mode="before")
    @classmethod
    def year_as_string(cls, v):
        return str(v) if isinstance(v, int) else v


class DownloadRequest(BaseModel):
    documents: list[DocumentIn]
    sourceDomain: str


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _log_archive_summary(job: ArchiveJob):
    logger.info(f"[api] Archive response finished: {job.summary()}")


def create_app(config: Optional[AppConfig] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build the app. ``transport`` replaces the outbound HTTP transport (tests)."""
    if config is None:
        config = load_config(os.environ.get("FILINGS_SCRAPER_CONFIG", "config.yaml"))
    setup_logger(config.log_dir, config.log_level)

    app = FastAPI(
        title="Financial Document Scraper API",
        version="0.1.0",
        description=(
            "Find investor-relations documents on a company's domain and "
            "download a selection of them as one ZIP archive."
        ),
    )
    app.state.config = config
    app.state.transport = transport

    # --- Rate limiting ---
    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return Response(
            content=json.dumps({"error": "Rate limit exceeded. Please slow down."}),
            status_code=429,
            media_type="application/json",
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        if request.url.path == "/api/scan":
            return _error("Invalid URL provided")
        return _error("Invalid request body")

    # --- CORS ---
    default_origins = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Routes ---

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "service": "filings-scraper-api"}

    @app.post("/api/scan")
    @limiter.limit(config.api.scan_rate_limit)
    async def scan(request: Request, req: ScanRequest):
        """Scan one page for on-domain document links."""
        if not _is_http_url(req.url):
            return _error("Invalid URL provided")

        # The crawl is locked to the domain of the input URL
        root = derive_root_domain(req.url)
        if not root:
            return _error("Could not determine root domain from URL")

        logger.info(f"[api] Starting scan for {req.url} (allowed: *.{root})")

        downloader = Downloader(config.download, transport=app.state.transport,
                                extensions=config.scan.extensions)
        async with downloader:
            scanner = PageScanner(downloader, config.scan.extensions)
            documents = await scanner.scan(req.url, root)

        return {
            "success": True,
            "scannedUrl": req.url,
            "allowedDomain": root,
            "found": len(documents),
            "documents": [d.to_dict() for d in documents],
        }

    @app.post("/api/download")
    @limiter.limit(config.api.download_rate_limit)
    async def download(request: Request, req: DownloadRequest):
        """Stream the approved documents as a ZIP archive.

        Once the first byte is sent a failure can't become an error response;
        the connection is dropped instead.
        """
        domain = normalize_root_domain(req.sourceDomain)
        if not domain or "/" in domain:
            return _error("Invalid request body")

        items = [ArchiveItem(url=d.url, title=d.title, type=d.type, year=d.year) for d in req.documents]

        downloader = Downloader(config.download, transport=app.state.transport,
                                extensions=config.scan.extensions)
        assembler = ArchiveAssembler(downloader, config.archive, close_downloader=True)
        job = assembler.assemble(items, domain)

        filename = f"{config.archive.filename_prefix}_{sanitize_title(domain)}.zip"
        logger.info(f"[api] Streaming {len(items)} documents for {domain}")

        return StreamingResponse(
            job,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            background=BackgroundTask(_log_archive_summary, job),
        )

    return app


app = create_app()
