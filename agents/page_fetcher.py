"""Page fetcher agent.

Fetches the homepage, then the selected candidate pages in fixed-size
concurrent batches.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Set

from loguru import logger

from clients.site_client import SiteClient
from config.settings import settings
from models.company import FetchedDocument, PageCandidate, ScrapedPage
from utils.errors import FetchError, InvalidURLError
from utils.helpers import chunk_list, normalize_url


@dataclass
class HomepageScan:
    page: ScrapedPage
    links: List[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)


class PageFetcherAgent:
    """
    The homepage is a hard dependency: failing to fetch it raises
    ``FetchError``.  Candidate pages are fetched ``batch_size`` at a time;
    a batch is awaited as a whole before the next one starts, and a
    failing page is logged and dropped without affecting its siblings.
    """

    def __init__(
        self,
        client: SiteClient,
        batch_size: Optional[int] = None,
        page_deadline: Optional[float] = None,
    ) -> None:
        self._client = client
        self._batch_size = batch_size or settings.fetch_batch_size
        self._page_deadline = page_deadline or settings.scrape_timeout_seconds * (
            settings.scrape_max_retries + 1
        )

    async def fetch_homepage(self, url: str) -> HomepageScan:
        logger.info(f"PageFetcherAgent: scanning homepage {url}")
        try:
            doc = await asyncio.wait_for(self._client.fetch_page(url), timeout=self._page_deadline)
        except asyncio.TimeoutError as exc:
            raise FetchError(url, f"Homepage timed out after {self._page_deadline}s") from exc
        page = _to_page(doc, url, default_title="Homepage")
        if page.logo_hint:
            logger.debug(f"PageFetcherAgent: homepage logo hint {page.logo_hint}")
        elif doc.metadata.get("favicon"):
            logger.debug(f"PageFetcherAgent: only a favicon on homepage: {doc.metadata['favicon']}")
        return HomepageScan(page=page, links=doc.links, metadata=doc.metadata)

    def plan(
        self, candidates: List[PageCandidate], limit: int, attempted: Set[str]
    ) -> List[PageCandidate]:
        """Pick up to *limit* candidates, skipping duplicates and anything in *attempted*."""
        planned: List[PageCandidate] = []
        seen = set(attempted)
        for candidate in candidates:
            if len(planned) >= limit:
                break
            try:
                key = normalize_url(candidate.url)
            except InvalidURLError:
                logger.debug(f"PageFetcherAgent: skipping malformed candidate {candidate.url!r}")
                continue
            if key in seen:
                continue
            seen.add(key)
            planned.append(candidate)
        return planned

    async def fetch_batches(
        self, candidates: List[PageCandidate], limit: int, attempted: Set[str]
    ) -> AsyncIterator[List[ScrapedPage]]:
        """
        Yield the successfully fetched pages of each batch, in candidate order.

        Every planned URL is added to *attempted* (normalised) before its
        batch starts, so failed pages are not offered again.
        """
        planned = self.plan(candidates, limit, attempted)
        if not planned:
            return
        batches = list(chunk_list(planned, self._batch_size))
        for number, batch in enumerate(batches, start=1):
            attempted.update(normalize_url(candidate.url) for candidate in batch)
            logger.info(
                f"PageFetcherAgent: batch {number}/{len(batches)} ({len(batch)} pages)"
            )
            results = await asyncio.gather(*(self._fetch_candidate(c) for c in batch))
            yield [page for page in results if page is not None]

    async def _fetch_candidate(self, candidate: PageCandidate) -> Optional[ScrapedPage]:
        try:
            doc = await asyncio.wait_for(
                self._client.fetch_page(candidate.url), timeout=self._page_deadline
            )
        except asyncio.TimeoutError:
            logger.warning(f"PageFetcherAgent: timed out fetching {candidate.url}")
            return None
        except Exception as exc:
            logger.warning(f"PageFetcherAgent: failed to fetch {candidate.url}: {exc}")
            return None
        return _to_page(doc, candidate.url, default_title=candidate.reason or candidate.url)


def _to_page(doc: FetchedDocument, url: str, default_title: str) -> ScrapedPage:
    return ScrapedPage(
        url=url,
        title=doc.title or default_title,
        content=doc.markdown,
        logo_hint=doc.logo_hint,
    )
