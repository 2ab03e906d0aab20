"""YAML config loader."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class DownloadConfig:
    timeout: float = 30
    connect_timeout: float = 10
    total_timeout: float = 60
    user_agent: str = BROWSER_USER_AGENT
    max_file_size: int = 104857600


@dataclass
class ScanConfig:
    extensions: List[str] = field(default_factory=lambda: [".pdf", ".xlsx", ".xls", ".zip"])


@dataclass
class ArchiveConfig:
    compression_level: int = 9
    error_dir: str = "ERRORS"
    unknown_year: str = "Unknown_Year"
    manifest_name: str = "manifest.json"
    filename_prefix: str = "financial_docs"


@dataclass
class ApiConfig:
    scan_rate_limit: str = "30/minute"
    download_rate_limit: str = "10/minute"


@dataclass
class AppConfig:
    log_dir: str = "logs"
    log_level: str = "INFO"
    download: DownloadConfig = field(default_factory=DownloadConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def _section(cls, raw: Optional[dict]):
    raw = raw or {}
    return cls(**{k: v for k, v in raw.items() if k in cls.__dataclass_fields__})


def load_config(config_path: Optional[str] = "config.yaml") -> AppConfig:
    """Load config from YAML. A missing file gives the defaults."""
    if not config_path or not os.path.exists(config_path):
        return AppConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    scan = _section(ScanConfig, raw.get("scan"))
    scan.extensions = [e.lower() if e.startswith(".") else f".{e.lower()}" for e in scan.extensions]

    return AppConfig(
        log_dir=raw.get("log_dir", "logs"),
        log_level=str(raw.get("log_level", "INFO")).upper(),
        download=_section(DownloadConfig, raw.get("download")),
        scan=scan,
        archive=_section(ArchiveConfig, raw.get("archive")),
        api=_section(ApiConfig, raw.get("api")),
    )
