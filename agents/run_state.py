"""Per-run state carried through every phase of a research run."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from models.company import (
    ExtractionResult,
    ImageColors,
    LogoSearchResult,
    PageCandidate,
    ScrapedPage,
)


class ResearchPhase(str, Enum):
    CHECKING_CACHE = "checking_cache"
    MAPPING_SITE = "mapping_site"
    SCANNING_HOMEPAGE = "scanning_homepage"
    ANALYZING_LINKS = "analyzing_links"
    SCRAPING_PAGES = "scraping_pages"
    RESOLVING_LOGO = "resolving_logo"
    EXTRACTING_INFO = "extracting_info"
    RESOLVING_COLORS = "resolving_colors"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ResearchRunState:
    """Mutable state of one run; only the orchestrator's main task writes to it."""

    url: str
    max_pages: int
    scan_more: bool = False
    phase: ResearchPhase = ResearchPhase.CHECKING_CACHE

    # Site mapping / selection
    all_links: List[str] = field(default_factory=list)
    candidates: List[PageCandidate] = field(default_factory=list)

    # Fetching
    pages: List[ScrapedPage] = field(default_factory=list)
    attempted: Set[str] = field(default_factory=set)
    homepage_logo: Optional[str] = None
    name_guess: str = ""

    # Carried over from a previous run when scanning more
    previous_content: str = ""
    previous_pages: List[str] = field(default_factory=list)

    # Background tasks, joined at RESOLVING_LOGO, EXTRACTING_INFO and RESOLVING_COLORS
    logo_task: Optional["asyncio.Task[LogoSearchResult]"] = None
    extraction_task: Optional["asyncio.Task[ExtractionResult]"] = None
    color_task: Optional["asyncio.Task[ImageColors]"] = None

    def pending_tasks(self) -> List["asyncio.Task"]:
        tasks = (self.logo_task, self.extraction_task, self.color_task)
        return [t for t in tasks if t is not None and not t.done()]
