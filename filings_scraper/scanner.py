"""Single-page document discovery restricted to one root domain."""

import logging
from typing import List
from urllib.parse import unquote, urlparse

from .classifier import DOCUMENT_EXTENSIONS, classify, looks_like_document
from .downloader import Downloader, FetchError
from .guard import is_allowed
from .links import extract_links
from .models import DiscoveredDocument

logger = logging.getLogger("filings_scraper")

ALLOWED_SCHEMES = ("http", "https")


class PageScanner:
    def __init__(self, downloader: Downloader, extensions=DOCUMENT_EXTENSIONS):
        self.downloader = downloader
        self.extensions = tuple(extensions)

    async def scan(self, target_url: str, allowed_root_domain: str) -> List[DiscoveredDocument]:
        """Fetch target_url and return the on-domain document links it holds.

        Never raises: fetch and parse failures are logged and give [].
        """
        if not allowed_root_domain:
            logger.error(f"[scan] No root domain for {target_url}, refusing to scan")
            return []

        logger.info(f"[scan] Fetching {target_url}")
        try:
            html = await self.downloader.fetch_text(target_url)
        except FetchError as e:
            logger.warning(f"[scan] {e}")
            return []

        try:
            links = extract_links(html, target_url)
        except Exception as e:
            logger.error(f"[scan] Could not parse {target_url}: {e}")
            return []

        results: List[DiscoveredDocument] = []
        seen = set()
        skipped_offsite = 0

        for text, url in links:
            try:
                scheme = urlparse(url).scheme.lower()
            except ValueError:
                continue
            if scheme not in ALLOWED_SCHEMES:
                continue

            if not is_allowed(url, allowed_root_domain):
                skipped_offsite += 1
                continue

            if not looks_like_document(url, self.extensions):
                continue

            if url in seen:
                continue
            seen.add(url)

            doc_type, year = classify(text, url)
            results.append(DiscoveredDocument(
                title=text or _title_from_url(url),
                url=url,
                type=doc_type,
                year=year,
                source_page=target_url,
            ))

        logger.info(
            f"[scan] {target_url}: {len(links)} links, {len(results)} documents, "
            f"{skipped_offsite} off-domain skipped"
        )
        return results


def _title_from_url(url: str) -> str:
    name = unquote(urlparse(url).path.rstrip("/").split("/")[-1])
    return name or "Untitled"
