"""
Company research pipeline – main entry point.

Usage
-----
# Research a company site and print the profile JSON
python main.py https://example.com

# Limit the scan, continue it with 10 more pages, write the result to a file
python main.py https://example.com --max-pages 8 --scan-more 10 --output profile.json
"""

from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

load_dotenv(override=True)

from config.settings import settings  # noqa: E402 – must be after load_dotenv
from agents.orchestrator import ResearchOrchestrator  # noqa: E402
from models.company import CompanyProfile, ProgressEvent, ProgressType  # noqa: E402


def _configure_logging() -> None:
    logger.remove()
    # colorize=False: avoid ANSI escape codes that corrupt non-TTY output.
    logger.add(
        sys.stderr,
        level=settings.log_level,
        colorize=False,
        format="{time:HH:mm:ss} | {level: <8} | {message}",
    )
    if settings.log_file:
        pathlib.Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention="7 days")


def _report(event: ProgressEvent) -> None:
    if event.type == ProgressType.EXTRACTION_CHUNK:
        logger.debug(f"chunk: {event.chunk!r}")
        return
    progress = ""
    if event.pages_scraped is not None and event.total_pages:
        progress = f" ({event.pages_scraped}/{event.total_pages})"
    print(f"[{event.type.value}] {event.message}{progress}", file=sys.stderr, flush=True)


async def _consume(stream) -> Optional[CompanyProfile]:
    """Drain one progress stream; returns the profile or ``None`` on error."""
    profile: Optional[CompanyProfile] = None
    async for event in stream:
        _report(event)
        if event.type == ProgressType.COMPLETE:
            profile = event.result
    return profile


async def _run(url: str, max_pages: Optional[int], scan_more: Optional[int]) -> Optional[CompanyProfile]:
    async with ResearchOrchestrator() as orchestrator:
        profile = await _consume(orchestrator.research(url, max_pages=max_pages))
        if profile is None or not scan_more:
            return profile
        if not profile.can_scan_more:
            logger.info("Nothing left to scan.")
            return profile
        logger.info(f"Scanning {scan_more} more pages...")
        return await _consume(orchestrator.scan_more(url, max_pages=scan_more))


def main() -> None:
    _configure_logging()

    parser = argparse.ArgumentParser(description="Research a company from its website")
    parser.add_argument("url", help="Company website, e.g. https://example.com")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=settings.default_max_pages,
        help="Maximum pages to read, homepage included.",
    )
    parser.add_argument(
        "--scan-more",
        type=int,
        default=0,
        metavar="N",
        help="After the first pass, read up to N additional pages.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the profile JSON to this file instead of stdout.",
    )
    args = parser.parse_args()

    profile = asyncio.run(_run(args.url, args.max_pages, args.scan_more))
    if profile is None:
        sys.exit(1)

    payload = profile.model_dump_json(by_alias=True, indent=2)
    if args.output:
        pathlib.Path(args.output).write_text(payload, encoding="utf-8")
        logger.success(f"Profile written to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
