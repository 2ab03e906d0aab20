"""Anchor extraction from HTML pages."""

from typing import List, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup


def _link_text(link) -> str:
    text = " ".join(link.get_text(" ").split())
    if text:
        return text
    # Image links often only carry a title or alt text
    title = link.get("title")
    if title:
        return title.strip()
    img = link.find("img", alt=True) if link.name == "a" else None
    return img["alt"].strip() if img else ""


def extract_links(html, base_url: str) -> List[Tuple[str, str]]:
    """Return (link text, absolute URL) for every anchor-like link on the page.

    Relative hrefs are resolved against the page's <base href> when present,
    else against base_url. Order follows the document.
    """
    soup = BeautifulSoup(html, "html.parser")

    base = soup.find("base", href=True)
    if base:
        base_url = urljoin(base_url, base["href"].strip())

    results = []
    for link in soup.find_all(["a", "area"], href=True):
        href = link["href"].strip()
        if not href:
            continue
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        results.append((_link_text(link), absolute))
    return results
