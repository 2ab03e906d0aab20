"""Streaming ZIP assembly for approved documents.

Documents are fetched one at a time in request order and compressed into the
output as soon as each one arrives. The stream is pull-based: nothing is
fetched until the consumer asks for more bytes, and a consumer that goes away
stops the fetch loop at its next await.

Every requested item ends up as exactly one outcome:

* Included -- bytes written at ``<FY year>/<type>/<title>.<ext>``
* Rejected -- failed the domain re-check, dropped without trace
* Failed   -- fetch failed, an error note is written under ``ERRORS/``

A ``manifest.json`` describing included and failed items closes the archive.
"""

import asyncio
import hashlib
import json
import logging
import re
import zipfile
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set
from urllib.parse import urlparse

from .config import ArchiveConfig
from .downloader import Downloader, FetchError
from .guard import is_allowed, normalize_root_domain
from .models import ArchiveItem, ArchiveOutcome, Failed, Included, Rejected

logger = logging.getLogger("filings_scraper")

UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.\-_]")
MAX_TITLE_LENGTH = 100
DEFAULT_EXTENSION = "pdf"
OTHER_TYPE = "Other"


class ArchiveAbortedError(Exception):
    """The archive could not be finished; the partial stream must be discarded."""


def sanitize_title(title: str) -> str:
    return UNSAFE_CHARS.sub("_", title or "")[:MAX_TITLE_LENGTH]


def year_segment(year: Optional[str], unknown_year: str = "Unknown_Year") -> str:
    if not year:
        return unknown_year
    year = sanitize_title(year)
    # FY tokens are stored verbatim, don't double the prefix
    return year if year.upper().startswith("FY") else f"FY{year}"


def type_segment(doc_type: Optional[str]) -> str:
    return sanitize_title(doc_type) or OTHER_TYPE


def file_extension(url: str) -> str:
    try:
        segment = urlparse(url).path.rstrip("/").split("/")[-1]
    except ValueError:
        return DEFAULT_EXTENSION
    if "." not in segment:
        return DEFAULT_EXTENSION
    ext = re.sub(r"[^a-z0-9]", "", segment.rsplit(".", 1)[1].lower())
    return ext or DEFAULT_EXTENSION


def archive_path(item: ArchiveItem, unknown_year: str = "Unknown_Year") -> str:
    title = sanitize_title(item.title) or "Untitled"
    return f"{year_segment(item.year, unknown_year)}/{type_segment(item.type)}/{title}.{file_extension(item.url)}"


def _unique_path(path: str, used: Set[str]) -> str:
    if path not in used:
        used.add(path)
        return path
    stem, dot, ext = path.rpartition(".")
    if not dot:
        stem, ext = path, ""
    n = 2
    while True:
        candidate = f"{stem}_{n}.{ext}" if ext else f"{stem}_{n}"
        if candidate not in used:
            used.add(candidate)
            return candidate
        n += 1


class _ZipSink:
    """Write-only, non-seekable target for ZipFile.

    ZipFile falls back to data descriptors when it can't seek, so each entry
    is complete once written and the buffer can be handed out immediately.
    """

    def __init__(self):
        self._buf = bytearray()

    def write(self, data) -> int:
        self._buf.extend(data)
        return len(data)

    def flush(self):
        pass

    def drain(self) -> bytes:
        data = bytes(self._buf)
        self._buf.clear()
        return data


class ArchiveJob:
    """One archive in flight.

    Iterate it (once) with ``async for`` to get ZIP bytes. While and after
    that, ``outcomes`` holds the per-item results, ``completed`` is set when
    the archive was finalized and ``aborted`` is True if it never will be.
    """

    def __init__(self, assembler: "ArchiveAssembler", items: List[ArchiveItem], source_domain: str):
        self.assembler = assembler
        self.items = items
        self.source_domain = source_domain
        self.outcomes: List[ArchiveOutcome] = []
        self.completed = asyncio.Event()
        self.aborted = False
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self._started = False

    def __aiter__(self):
        if self._started:
            raise RuntimeError("ArchiveJob can only be streamed once")
        self._started = True
        return self._stream()

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def summary(self) -> dict:
        return {
            "sourceDomain": self.source_domain,
            "requested": len(self.items),
            "included": self.count(Included.status),
            "failed": self.count(Failed.status),
            "rejected": self.count(Rejected.status),
            "completed": self.completed.is_set(),
            "aborted": self.aborted,
        }

    def manifest(self) -> dict:
        documents = []
        for outcome in self.outcomes:
            if isinstance(outcome, Rejected):
                continue
            entry = dict(outcome.item.to_dict(), status=outcome.status)
            if isinstance(outcome, Included):
                entry.update(path=outcome.path, size=outcome.size, sha256=outcome.sha256)
            else:
                entry["error"] = outcome.error
            documents.append(entry)
        return {
            "sourceDomain": self.source_domain,
            "timestamp": self.timestamp,
            "documents": documents,
        }

    async def _stream(self):
        config = self.assembler.config
        sink = _ZipSink()
        used: Set[str] = set()
        try:
            zf = zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=config.compression_level)
            for item in self.items:
                outcome = await self.assembler.process_item(item, self.source_domain, zf, used)
                self.outcomes.append(outcome)
                chunk = sink.drain()
                if chunk:
                    yield chunk

            try:
                zf.writestr(config.manifest_name, json.dumps(self.manifest(), indent=2))
                zf.close()
            except (OSError, ValueError, zipfile.LargeZipFile) as e:
                raise ArchiveAbortedError(f"Could not finalize archive: {e}") from e

            chunk = sink.drain()
            if chunk:
                yield chunk
            self.completed.set()
            logger.info(f"[archive] Done: {self.summary()}")

        except (asyncio.CancelledError, GeneratorExit):
            logger.warning(
                f"[archive] Consumer went away after {len(self.outcomes)}/{len(self.items)} items, stopping"
            )
            raise
        except Exception as e:
            logger.error(f"[archive] Aborting archive for {self.source_domain}: {e}")
            raise
        finally:
            if not self.completed.is_set():
                self.aborted = True
            if self.assembler.close_downloader:
                await self.assembler.downloader.aclose()


class ArchiveAssembler:
    def __init__(self, downloader: Downloader, config: Optional[ArchiveConfig] = None,
                 close_downloader: bool = False):
        self.downloader = downloader
        self.config = config or ArchiveConfig()
        self.close_downloader = close_downloader

    def assemble(self, items: Iterable[ArchiveItem], allowed_root_domain: str) -> ArchiveJob:
        root = normalize_root_domain(allowed_root_domain)
        if not root:
            raise ValueError("allowed_root_domain is empty, no trust boundary to check against")
        return ArchiveJob(self, list(items), root)

    async def process_item(self, item: ArchiveItem, root: str, zf: zipfile.ZipFile,
                           used: Set[str]) -> ArchiveOutcome:
        """Turn one requested item into an outcome, writing its entry if any."""
        if not is_allowed(item.url, root):
            logger.warning(f"[archive] Skipping {item.url} - off-domain for {root}")
            return Rejected(item)

        logger.info(f"[archive] Fetching {item.url}")
        try:
            data = await self.downloader.fetch_bytes(item.url)
        except FetchError as e:
            logger.error(f"[archive] Failed to include {item.url}: {e.detail}")
            error_path = _unique_path(
                f"{self.config.error_dir}/{sanitize_title(item.title) or 'Untitled'}_error.txt", used
            )
            note = f"Failed to download: {item.title}\nURL: {item.url}\nError: {e.detail}\n"
            zf.writestr(error_path, note)
            return Failed(item, e.detail, error_path)

        path = _unique_path(archive_path(item, self.config.unknown_year), used)
        # Compression of a large file shouldn't stall the event loop
        await asyncio.to_thread(zf.writestr, path, data)
        return Included(item, path, len(data), hashlib.sha256(data).hexdigest())
