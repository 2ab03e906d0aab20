"""Data models for discovery and archiving."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class DocumentType(str, Enum):
    ANNUAL = "Annual"
    QUARTERLY = "Quarterly"
    PRESENTATION = "Presentation"
    ESG = "ESG"
    OTHER = "Other"


@dataclass(frozen=True)
class DiscoveredDocument:
    title: str
    url: str
    type: DocumentType
    source_page: str
    year: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "year": self.year,
            "type": self.type.value,
            "sourcePage": self.source_page,
        }


@dataclass(frozen=True)
class ArchiveItem:
    """A document the caller approved for archiving. Never trusted as-is."""
    url: str
    title: str
    type: str = ""
    year: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "ArchiveItem":
        year = raw.get("year")
        return cls(
            url=raw["url"],
            title=raw.get("title") or "",
            type=raw.get("type") or "",
            year=str(year) if year else None,
        )

    def to_dict(self) -> dict:
        return {"url": self.url, "title": self.title, "year": self.year, "type": self.type}


# Per-item archive outcomes: exactly one per requested item.

@dataclass(frozen=True)
class Included:
    item: ArchiveItem
    path: str
    size: int
    sha256: str
    status = "included"


@dataclass(frozen=True)
class Rejected:
    item: ArchiveItem
    status = "rejected"


@dataclass(frozen=True)
class Failed:
    item: ArchiveItem
    error: str
    error_path: str
    status = "failed"


ArchiveOutcome = Union[Included, Rejected, Failed]
