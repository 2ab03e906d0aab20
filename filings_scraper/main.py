"""CLI entry point: scan a page for documents or build an archive on disk."""

import argparse
import asyncio
import json
import os
import sys

from .archive import ArchiveAbortedError, ArchiveAssembler
from .config import load_config
from .downloader import Downloader
from .guard import derive_root_domain, normalize_root_domain
from .logger import setup_logger
from .models import ArchiveItem
from .scanner import PageScanner


async def run_scan(config, url: str, root: str):
    async with Downloader(config.download, extensions=config.scan.extensions) as downloader:
        scanner = PageScanner(downloader, config.scan.extensions)
        return await scanner.scan(url, root)


async def run_archive(config, items, domain: str, output_path: str):
    """Stream the archive to ``output_path``.

    Bytes go to a ``.part`` file that is renamed only once the archive is
    finalized, so an aborted run leaves no truncated ZIP behind.
    """
    downloader = Downloader(config.download, extensions=config.scan.extensions)
    assembler = ArchiveAssembler(downloader, config.archive, close_downloader=True)
    job = assembler.assemble(items, domain)

    partial_path = output_path + ".part"
    try:
        with open(partial_path, "wb") as f:
            async for chunk in job:
                f.write(chunk)
        if not job.completed.is_set():
            raise ArchiveAbortedError(f"Archive for {domain} was not finalized")
        os.replace(partial_path, output_path)
    finally:
        if os.path.exists(partial_path):
            os.remove(partial_path)
    return job


def load_items(path: str):
    """Read archive items from a JSON list or a saved scan response."""
    with open(path) as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("documents", [])
    return [ArchiveItem.from_dict(d) for d in raw]


def show_documents(documents):
    print(f"\n{'Year':<8} {'Type':<14} Title")
    print("-" * 70)
    for doc in documents:
        print(f"{doc.year or '-':<8} {doc.type.value:<14} {doc.title[:60]}")
        print(f"{'':<23} {doc.url}")
    print(f"\n{len(documents)} documents found.")


def show_summary(job, output_path: str):
    s = job.summary()
    print(f"\nArchive: {output_path}")
    print(f"  Requested: {s['requested']}")
    print(f"  Included:  {s['included']}")
    print(f"  Failed:    {s['failed']}")
    print(f"  Rejected:  {s['rejected']} (off-domain)")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Financial document scraper")
    parser.add_argument("--config", type=str, default="config.yaml",
                        help="Path to config file")
    sub = parser.add_subparsers(dest="command", required=True)

    scan_p = sub.add_parser("scan", help="List documents linked from a page")
    scan_p.add_argument("url", help="Seed page, e.g. https://investor.apple.com/")
    scan_p.add_argument("--json", action="store_true", help="Print the result as JSON")

    arch_p = sub.add_parser("archive", help="Download approved documents into a ZIP")
    arch_p.add_argument("--domain", required=True, help="Root domain every URL must belong to")
    arch_p.add_argument("--input", required=True,
                        help="JSON file with a list of documents or a scan result")
    arch_p.add_argument("--output", default=None, help="Output ZIP path")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logger(config.log_dir, config.log_level)

    if args.command == "scan":
        root = derive_root_domain(args.url)
        if not root:
            print(f"Could not determine root domain from {args.url}", file=sys.stderr)
            return 2
        documents = asyncio.run(run_scan(config, args.url, root))
        if args.json:
            print(json.dumps({
                "scannedUrl": args.url,
                "allowedDomain": root,
                "found": len(documents),
                "documents": [d.to_dict() for d in documents],
            }, indent=2))
        else:
            print(f"Scanned {args.url} (allowed: *.{root})")
            show_documents(documents)
        return 0

    domain = normalize_root_domain(args.domain)
    if not domain:
        print("A non-empty --domain is required", file=sys.stderr)
        return 2
    output = args.output or f"{config.archive.filename_prefix}_{domain}.zip"
    try:
        job = asyncio.run(run_archive(config, load_items(args.input), domain, output))
    except ArchiveAbortedError as e:
        print(f"Archive aborted, nothing written: {e}", file=sys.stderr)
        return 1
    show_summary(job, output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
