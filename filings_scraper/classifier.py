"""Classify document links by type and reporting period."""

import re
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from .models import DocumentType

DOCUMENT_EXTENSIONS = (".pdf", ".xlsx", ".xls", ".zip")

YEAR_PATTERN = re.compile(r"(?:19|20)\d{2}|FY\d{2}", re.IGNORECASE)

# Checked in this order; the first category with a hit wins.
KEYWORDS = (
    (DocumentType.ANNUAL, ("annual report", "10-k", "20-f", "annual review", "year end")),
    (DocumentType.QUARTERLY, ("10-q", "quarterly", "q1", "q2", "q3", "q4",
                              "interim", "half-year", "semi-annual")),
    (DocumentType.PRESENTATION, ("presentation", "earnings deck", "slides", "investor deck")),
    (DocumentType.ESG, ("esg", "sustainability", "climate", "tcfd", "csr")),
)

# "Annual ESG Report" is an annual report; "semi-annual" is quarterly.
ANNUAL_WORD = re.compile(r"(?<!semi-)(?<!semi )\bannual\b")


def looks_like_document(url: str, extensions: Iterable[str] = DOCUMENT_EXTENSIONS) -> bool:
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return path.endswith(tuple(extensions))


def extract_year(text: str) -> Optional[str]:
    match = YEAR_PATTERN.search(text)
    return match.group(0).upper() if match else None


def classify(link_text: str, url: str) -> Tuple[DocumentType, Optional[str]]:
    """Return (type, year) for a link.

    Year tokens are kept as found, so "FY23" is not turned into "2023".
    """
    text = f"{link_text} {url}"
    year = extract_year(text)

    lowered = text.lower()
    for doc_type, words in KEYWORDS:
        if any(w in lowered for w in words):
            return doc_type, year
        if doc_type is DocumentType.ANNUAL and ANNUAL_WORD.search(lowered):
            return doc_type, year
    return DocumentType.OTHER, year
