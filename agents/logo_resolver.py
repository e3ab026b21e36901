"""Logo resolver agent.

Searches for the company's logo image by name, falling back to a
domain-derived name.  Never raises.
"""

from __future__ import annotations

import re
import time
from typing import List, Optional

from loguru import logger

from clients.image_search_client import ImageSearchClient
from config.settings import settings
from models.company import ImageResult, LogoCandidate, LogoSearchResult
from utils.helpers import name_from_domain

_LOGO_MARKERS = ("logo", "brand")
_AVATAR_MARKERS = ("profile", "avatar", "favicon")


def build_query(company_name: str) -> str:
    clean = re.sub(r"[.,!?;:]+$", "", company_name.strip())
    return f"{clean} logo transparent png"


def looks_like_logo(result: ImageResult) -> bool:
    """Keep anything mentioning logo/brand; otherwise drop avatar-like images."""
    url = result.url.lower()
    title = result.title.lower()
    if any(marker in url or marker in title for marker in _LOGO_MARKERS):
        return True
    return not any(marker in url for marker in _AVATAR_MARKERS)


def to_candidates(results: List[ImageResult], max_results: int) -> List[LogoCandidate]:
    candidates = []
    for result in results:
        if not looks_like_logo(result):
            continue
        image_url = result.image_url or result.url
        candidates.append(
            LogoCandidate(
                url=image_url,
                thumbnail_url=result.thumbnail_url or image_url,
                title=result.title or "Logo",
                source=result.source or "Unknown",
                width=result.width,
                height=result.height,
            )
        )
        if len(candidates) >= max_results:
            break
    return candidates


class LogoResolverAgent:
    """Image search with a domain-name retry; the first candidate is the best guess."""

    def __init__(self, client: ImageSearchClient, max_results: Optional[int] = None) -> None:
        self._client = client
        self._max_results = max_results or settings.logo_max_results

    async def run(self, company_name: str, site_url: Optional[str] = None) -> LogoSearchResult:
        started = time.perf_counter()

        result = await self._search(company_name)
        if result and result.candidates:
            return self._timed(result, started)

        if site_url:
            domain_name = name_from_domain(site_url)
            if domain_name.lower() != company_name.strip().lower():
                logger.info(f"LogoResolverAgent: retrying with domain name {domain_name!r}")
                result = await self._search(domain_name)
                if result and result.candidates:
                    return self._timed(result, started)

        logger.warning(f"LogoResolverAgent: no logo candidates for {company_name!r}")
        return LogoSearchResult(candidates=[], query=build_query(company_name))

    async def _search(self, name: str) -> Optional[LogoSearchResult]:
        query = build_query(name)
        try:
            results = await self._client.search_images(query, self._max_results)
        except Exception as exc:
            logger.warning(f"LogoResolverAgent: search for {query!r} failed: {exc}")
            return None
        candidates = to_candidates(results, self._max_results)
        logger.info(f"LogoResolverAgent: {len(candidates)} candidates for {query!r}")
        return LogoSearchResult(candidates=candidates, query=query)

    @staticmethod
    def _timed(result: LogoSearchResult, started: float) -> LogoSearchResult:
        elapsed = int((time.perf_counter() - started) * 1000)
        return result.model_copy(update={"search_time_ms": elapsed})
