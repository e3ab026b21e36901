"""Research orchestrator.

Coordinates every other agent to turn a company URL into a
``CompanyProfile`` while streaming ``ProgressEvent``s to the caller:
map → homepage (+ logo search in background) → select → fetch → logo join
→ colours in background → streaming extraction → colour join → cache.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional

from loguru import logger

from agents.color_resolver import ColorResolverAgent, merge_colors
from agents.extractor import ExtractorAgent
from agents.logo_resolver import LogoResolverAgent
from agents.page_fetcher import PageFetcherAgent
from agents.page_selector import PageSelectorAgent
from agents.run_state import ResearchPhase, ResearchRunState
from agents.site_mapper import SiteMapperAgent
from clients.image_search_client import ImageSearchClient
from clients.llm_client import TextGenerationClient
from clients.palette_client import PaletteClient
from clients.site_client import SiteClient, build_site_client
from config.settings import settings
from models.company import (
    CacheEntry,
    CompanyProfile,
    ExtractionResult,
    ImageColors,
    LogoSearchResult,
    PageCandidate,
    ProgressEvent,
    ProgressType,
    ScrapedPage,
)
from storage.result_cache import ResultCache
from utils.errors import ConfigurationError, InvalidURLError
from utils.helpers import guess_company_name, normalize_url, same_origin_links, validate_target_url

_STEPS = 7


def _status(message: str, **fields) -> ProgressEvent:
    return ProgressEvent(type=ProgressType.STATUS, message=message, **fields)


def build_corpus(pages: List[ScrapedPage], previous: str = "") -> str:
    """Newly fetched pages first, then the previous corpus; capped at the corpus budget."""
    sections = [f"=== {page.title} ({page.url}) ===\n{page.content}" for page in pages]
    if previous:
        sections.append(previous)
    return "\n\n".join(sections)[: settings.corpus_char_budget]


class ResearchOrchestrator:
    """
    Top-level agent running the company research pipeline.

    Pipeline steps:
    1. SiteMapperAgent     – enumerate same-origin URLs
    2. PageFetcherAgent    – fetch the homepage (the only fatal step)
       LogoResolverAgent   – started in the background right after
    3. PageSelectorAgent   – rank links against the priority taxonomy
    4. PageFetcherAgent    – fetch selected pages in concurrent batches
    5. LogoResolverAgent   – joined; the logo is reported early
       ColorResolverAgent  – started in the background
    6. ExtractorAgent      – streaming structured extraction
    7. ColorResolverAgent  – joined; profile assembled and cached

    Collaborators are injected; missing ones are built from settings on the
    first cache miss.  Every run ends with exactly one ``complete`` or
    ``error`` event.
    """

    def __init__(
        self,
        cache: Optional[ResultCache] = None,
        site_client: Optional[SiteClient] = None,
        llm: Optional[TextGenerationClient] = None,
        image_search: Optional[ImageSearchClient] = None,
        palette: Optional[PaletteClient] = None,
    ) -> None:
        self._cache = cache if cache is not None else ResultCache()
        self._site_client = site_client
        self._llm = llm
        self._image_search = image_search
        self._palette = palette
        self._ready = False

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def __aenter__(self) -> "ResearchOrchestrator":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in (self._site_client, self._llm, self._image_search, self._palette):
            closer = getattr(client, "aclose", None)
            if closer is not None:
                await closer()

    # ── Public entry points ───────────────────────────────────────────────────

    async def research(
        self, url: str, max_pages: Optional[int] = None
    ) -> AsyncIterator[ProgressEvent]:
        """Full run; served from the cache when a fresh entry exists."""
        async for event in self._run(url, max_pages or settings.default_max_pages, scan_more=False):
            yield event

    async def scan_more(
        self, url: str, max_pages: Optional[int] = None
    ) -> AsyncIterator[ProgressEvent]:
        """Continue a cached run with its remaining candidates, or run fresh."""
        async for event in self._run(url, max_pages or settings.default_max_pages, scan_more=True):
            yield event

    # ── Run driver ────────────────────────────────────────────────────────────

    async def _run(self, url: str, max_pages: int, scan_more: bool) -> AsyncIterator[ProgressEvent]:
        try:
            key = validate_target_url(url)
        except InvalidURLError as exc:
            logger.error(f"ResearchOrchestrator: rejected target {url!r}: {exc}")
            yield ProgressEvent(type=ProgressType.ERROR, message=str(exc))
            return

        previous: Optional[CacheEntry] = self._cache.get(key)
        if previous is not None and not scan_more:
            logger.info(f"ResearchOrchestrator: cache hit for {key}")
            yield _status("Using cached results from previous scan")
            yield ProgressEvent(
                type=ProgressType.COMPLETE,
                message="Scan complete (cached)",
                result=previous.result,
            )
            return
        if scan_more and previous is None:
            logger.info(f"ResearchOrchestrator: nothing cached for {key}; running a fresh scan.")

        try:
            self._ensure_agents()
        except ConfigurationError as exc:
            logger.error(f"ResearchOrchestrator: {exc}")
            yield ProgressEvent(type=ProgressType.ERROR, message=str(exc))
            return

        state = ResearchRunState(url=key, max_pages=max(1, max_pages), scan_more=previous is not None)
        terminal_sent = False
        try:
            async for event in self._pipeline(state, previous):
                terminal_sent = terminal_sent or event.is_terminal
                yield event
        except Exception as exc:
            logger.exception(f"ResearchOrchestrator: run for {key} failed unexpectedly")
            if not terminal_sent:
                state.phase = ResearchPhase.ERROR
                yield ProgressEvent(type=ProgressType.ERROR, message=f"Scan failed: {exc}")
        finally:
            for task in state.pending_tasks():
                task.cancel()

    def _ensure_agents(self) -> None:
        if self._ready:
            return
        self._llm = self._llm or TextGenerationClient()
        self._site_client = self._site_client or build_site_client()
        self._image_search = self._image_search or ImageSearchClient()
        self._palette = self._palette or PaletteClient()

        self._mapper = SiteMapperAgent(self._site_client)
        self._fetcher = PageFetcherAgent(self._site_client)
        self._selector = PageSelectorAgent(self._llm)
        self._logo = LogoResolverAgent(self._image_search)
        self._extractor = ExtractorAgent(self._llm)
        self._colors = ColorResolverAgent(self._palette)
        self._ready = True

    # ── Pipeline ──────────────────────────────────────────────────────────────

    async def _pipeline(
        self, state: ResearchRunState, previous: Optional[CacheEntry]
    ) -> AsyncIterator[ProgressEvent]:
        logger.info("=" * 60)
        logger.info(f"ResearchOrchestrator: {'continuing' if previous else 'starting'} {state.url}")
        logger.info("=" * 60)

        # Step 1 – site map, or the remaining candidates of the previous run
        if previous is None:
            state.phase = ResearchPhase.MAPPING_SITE
            logger.info(f"[1/{_STEPS}] Mapping site...")
            yield _status("Mapping website structure...", pages_scraped=0, total_pages=state.max_pages)
            state.all_links = await self._mapper.run(state.url)
        else:
            logger.info(f"[1/{_STEPS}] Reusing {len(previous.remaining_candidates)} remaining links.")
            state.all_links = list(previous.remaining_candidates)
            state.previous_content = previous.raw_content
            state.previous_pages = list(previous.result.pages_scraped)
            yield _status(
                f"Continuing scan with {len(state.all_links)} remaining pages...",
                pages_scraped=len(state.previous_pages),
            )

        # Step 2 – homepage (fatal on failure)
        state.phase = ResearchPhase.SCANNING_HOMEPAGE
        logger.info(f"[2/{_STEPS}] Scanning homepage...")
        yield _status("Scanning homepage...", pages_scraped=len(state.previous_pages), total_pages=state.max_pages)
        try:
            scan = await self._fetcher.fetch_homepage(state.url)
        except Exception as exc:
            state.phase = ResearchPhase.ERROR
            logger.error(f"ResearchOrchestrator: homepage fetch failed: {exc}")
            yield ProgressEvent(type=ProgressType.ERROR, message=f"Failed to scan homepage: {exc}")
            return

        homepage = scan.page
        state.homepage_logo = homepage.logo_hint
        state.attempted.add(state.url)
        for page_url in state.previous_pages:
            try:
                state.attempted.add(normalize_url(page_url))
            except InvalidURLError:
                continue

        if previous is None:
            state.pages.append(homepage)
            yield ProgressEvent(
                type=ProgressType.PAGE_SCRAPED,
                message=f"Scanned: {homepage.title}",
                page_url=homepage.url,
                page_title=homepage.title,
                pages_scraped=1,
                total_pages=state.max_pages,
            )
            if not state.all_links and scan.links:
                logger.info("ResearchOrchestrator: using homepage links as fallback.")
                state.all_links = list(dict.fromkeys(same_origin_links(scan.links, state.url)))

        state.name_guess = guess_company_name(homepage.title, state.url)
        state.logo_task = asyncio.create_task(self._logo.run(state.name_guess, state.url))
        yield ProgressEvent(
            type=ProgressType.LOGO_SEARCH,
            message=f"Searching for {state.name_guess} logo...",
        )

        # Step 3 – page selection
        state.phase = ResearchPhase.ANALYZING_LINKS
        if previous is None:
            logger.info(f"[3/{_STEPS}] Selecting pages...")
            yield ProgressEvent(type=ProgressType.ANALYZING, message="Analyzing site structure...")
            state.candidates = await self._selector.run(
                homepage.content, state.all_links, state.max_pages - 1
            )
            budget = state.max_pages - 1
        else:
            logger.info(f"[3/{_STEPS}] Selection skipped; continuing with cached candidates.")
            state.candidates = [
                PageCandidate(url=link, reason="Additional page", priority=5)
                for link in state.all_links
            ]
            budget = state.max_pages

        planned = self._fetcher.plan(state.candidates, budget, state.attempted)
        total_pages = len(state.previous_pages) + len(state.pages) + len(planned)
        yield _status(
            f"Found {len(planned)} relevant pages to scan",
            pages_scraped=len(state.previous_pages) + len(state.pages),
            total_pages=total_pages,
        )

        # Step 4 – concurrent page fetch
        state.phase = ResearchPhase.SCRAPING_PAGES
        logger.info(f"[4/{_STEPS}] Fetching {len(planned)} pages...")
        async for batch in self._fetcher.fetch_batches(state.candidates, budget, state.attempted):
            for page in batch:
                state.pages.append(page)
                yield ProgressEvent(
                    type=ProgressType.PAGE_SCRAPED,
                    message=f"Scanned: {page.title}",
                    page_url=page.url,
                    page_title=page.title,
                    pages_scraped=len(state.previous_pages) + len(state.pages),
                    total_pages=total_pages,
                )

        # Step 5 – join the logo search, start colours
        state.phase = ResearchPhase.RESOLVING_LOGO
        logger.info(f"[5/{_STEPS}] Resolving logo...")
        logo_result = await self._join_logo(state)
        best_logo = logo_result.candidates[0].url if logo_result.candidates else None
        if best_logo:
            yield ProgressEvent(
                type=ProgressType.LOGO_FOUND,
                message=f"Found {len(logo_result.candidates)} logo candidates",
                logo=best_logo,
                logo_candidates=logo_result.candidates,
            )
        elif state.homepage_logo:
            yield ProgressEvent(
                type=ProgressType.LOGO_FOUND,
                message="Using the homepage preview image as logo",
                logo=state.homepage_logo,
                logo_candidates=[],
            )
        else:
            yield _status("No logo found")

        color_pages = state.pages if previous is None else [homepage, *state.pages]
        state.color_task = asyncio.create_task(
            self._colors.run(list(color_pages), best_logo or state.homepage_logo)
        )

        # Step 6 – streaming extraction
        state.phase = ResearchPhase.EXTRACTING_INFO
        logger.info(f"[6/{_STEPS}] Extracting company information...")
        yield ProgressEvent(type=ProgressType.EXTRACTING, message="Extracting company information...")
        corpus = build_corpus(state.pages, previous=state.previous_content)
        channel: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=settings.event_buffer_size)
        state.extraction_task = asyncio.create_task(self._extract_into(corpus, state.url, channel))
        while True:
            fragment = await channel.get()
            if fragment is None:
                break
            yield ProgressEvent(
                type=ProgressType.EXTRACTION_CHUNK,
                message="Writing company profile...",
                chunk=fragment,
            )
        extracted = await state.extraction_task

        # Step 7 – join colours, assemble, cache
        state.phase = ResearchPhase.RESOLVING_COLORS
        logger.info(f"[7/{_STEPS}] Resolving colours...")
        image_colors = await self._join_colors(state)

        pages_scraped = state.previous_pages + [page.url for page in state.pages]
        remaining = self._remaining_links(state)
        profile = CompanyProfile(
            name=extracted.name or guess_company_name(None, state.url),
            industry=extracted.industry or "",
            description=extracted.description or "",
            logo=best_logo or extracted.logo or state.homepage_logo,
            logo_candidates=logo_result.candidates,
            colors=merge_colors(image_colors, extracted.suggested_colors),
            pages_scraped=pages_scraped,
            can_scan_more=bool(remaining) or len(state.all_links) > len(pages_scraped),
            remaining_links=remaining,
        )
        self._cache.put(
            state.url,
            CacheEntry(
                key=state.url,
                result=profile,
                raw_content=corpus,
                remaining_candidates=remaining,
                created_at=self._cache.now(),
            ),
        )

        state.phase = ResearchPhase.COMPLETE
        logger.success(f"ResearchOrchestrator: scan complete, {len(pages_scraped)} pages analysed.")
        yield ProgressEvent(
            type=ProgressType.COMPLETE,
            message=f"Scan complete! Analyzed {len(pages_scraped)} pages.",
            result=profile,
        )

    # ── Join points ───────────────────────────────────────────────────────────

    async def _join_logo(self, state: ResearchRunState) -> LogoSearchResult:
        try:
            return await state.logo_task
        except Exception as exc:
            logger.warning(f"ResearchOrchestrator: logo search failed: {exc}")
            return LogoSearchResult(candidates=[], query=state.name_guess)

    async def _join_colors(self, state: ResearchRunState) -> ImageColors:
        try:
            return await state.color_task
        except Exception as exc:
            logger.warning(f"ResearchOrchestrator: colour resolution failed: {exc}")
            return ImageColors()

    async def _extract_into(
        self, corpus: str, url: str, channel: "asyncio.Queue[Optional[str]]"
    ) -> ExtractionResult:
        """Run the extractor, sending fragments on *channel* and ``None`` when done."""
        try:
            result = await self._extractor.run(corpus, url, on_chunk=channel.put)
        except Exception:
            await channel.put(None)
            raise
        await channel.put(None)
        return result

    @staticmethod
    def _remaining_links(state: ResearchRunState) -> List[str]:
        remaining: List[str] = []
        seen = set(state.attempted)
        for candidate in state.candidates:
            try:
                key = normalize_url(candidate.url)
            except InvalidURLError:
                continue
            if key in seen:
                continue
            seen.add(key)
            remaining.append(candidate.url)
        return remaining
