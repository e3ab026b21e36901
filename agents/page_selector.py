"""Page selector agent.

Asks the text-generation service which discovered pages are worth reading
for an onboarding-oriented company profile, and returns them ranked.
"""

from __future__ import annotations

import json
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from clients.llm_client import TextGenerationClient
from config.settings import settings
from models.company import PageCandidate
from utils.helpers import find_balanced

# Substrings marking pages that never help: auth, commerce, legal, binaries.
LINK_DENYLIST = (
    "login",
    "signup",
    "sign-up",
    "register",
    "cart",
    "checkout",
    "privacy",
    "terms",
    "cookie",
    "/cdn-cgi/",
    ".pdf",
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".zip",
)

SELECTION_PROMPT = """\
You are analyzing a company website to gather comprehensive information for employee onboarding content generation.

Here is the homepage content:
<homepage>
{homepage}
</homepage>

Here are the available links on the site:
<links>
{links}
</links>

Your task: Select up to {max_pages} pages that would be MOST valuable for understanding the company.

**HIGHEST PRIORITY (priority 9-10) - ALWAYS include if available:**
- Careers pages (/careers, /jobs, /work-with-us, /join-us, /opportunities, /join-our-team)
- About Us pages (/about, /about-us, /our-story, /who-we-are, /company)
- Team/People pages (/team, /people, /our-team, /leadership, /meet-the-team)
- Culture pages (/culture, /life-at, /working-here, /our-culture, /benefits)
- Values pages (/values, /our-values, /mission, /what-we-stand-for)

**HIGH PRIORITY (priority 7-8):**
- Mission/Vision pages
- History/Story pages (/history, /our-history, /our-journey)
- Why work here pages
- Employee benefits/perks pages
- Diversity & Inclusion pages

**MEDIUM PRIORITY (priority 5-6):**
- Products/Services overview (main page, not individual products)
- Customers/Industries served (overview only)

AVOID blog posts, news articles, individual case studies, legal pages, support
documentation, individual product pages, login/signup pages, shopping pages and
social media links.

Companies name career pages in many ways: /careers, /career, /jobs, /join,
/work-here, /employment, /openings, /positions, /vacancies, /hiring,
/life-at-[company], /working-at-[company].

Return a JSON array of objects with:
- "url": the full URL
- "reason": short description (e.g. "About Us page", "Careers & Culture page")
- "priority": integer 1-10 (10 = highest priority)

Sort by priority descending. Return ONLY the JSON array, no other text.
"""


def filter_links(links: List[str], limit: Optional[int] = None) -> List[str]:
    """Deduplicate, drop denylisted URLs and cap the list."""
    limit = limit or settings.max_candidate_links
    kept = [
        link
        for link in dict.fromkeys(links)
        if not any(marker in link.lower() for marker in LINK_DENYLIST)
    ]
    return kept[:limit]


def parse_candidates(text: str) -> List[PageCandidate]:
    """First balanced JSON array in *text* → candidates sorted by priority.

    An unparseable array yields ``[]``: selection only optimises which pages
    are read.  Entries that fail validation are dropped one by one.
    ``sorted`` is stable, so ties keep the order the service returned them in.
    """
    span = find_balanced(text or "", "[", "]")
    if span is None:
        return []
    try:
        items = json.loads(span)
    except ValueError as exc:
        logger.debug(f"PageSelectorAgent: unparseable selection ({exc})")
        return []

    candidates: List[PageCandidate] = []
    for item in items:
        try:
            candidates.append(PageCandidate.model_validate(item))
        except ValidationError as exc:
            logger.debug(f"PageSelectorAgent: dropping candidate {item!r} ({exc.error_count()} errors)")
    return sorted(candidates, key=lambda candidate: -candidate.priority)


class PageSelectorAgent:
    """Ranks discovered links against the fixed priority taxonomy."""

    def __init__(self, llm: TextGenerationClient) -> None:
        self._llm = llm

    async def run(self, homepage_content: str, links: List[str], max_pages: int) -> List[PageCandidate]:
        candidates = filter_links(links)
        if not candidates:
            logger.info("PageSelectorAgent: no candidate links to rank.")
            return []

        prompt = SELECTION_PROMPT.format(
            homepage=homepage_content[: settings.homepage_char_budget],
            links="\n".join(candidates),
            max_pages=max_pages,
        )
        logger.info(f"PageSelectorAgent: ranking {len(candidates)} links (max {max_pages}).")
        try:
            text = await self._llm.complete(prompt, max_tokens=settings.selection_max_tokens)
        except Exception as exc:
            logger.error(f"PageSelectorAgent: selection request failed: {exc}")
            return []

        pages = parse_candidates(text)
        if not pages:
            logger.warning("PageSelectorAgent: no usable selection returned.")
        else:
            logger.info(f"PageSelectorAgent: selected {len(pages)} pages.")
        return pages
