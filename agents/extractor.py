"""Company info extractor agent.

Streams a structured extraction from the text-generation service, forwards
each fragment to the caller as it arrives, and validates the JSON it finds
against ``ExtractionResult``.  Falls back to a non-streaming request, then
to a domain-derived default; extraction never fails a run.
"""

from __future__ import annotations

import json
from typing import Awaitable, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from clients.llm_client import TextGenerationClient
from config.settings import settings
from models.company import ExtractionResult, SuggestedColors
from utils.helpers import find_balanced, name_from_domain

ChunkHandler = Callable[[str], Awaitable[None]]

EXTRACTION_PROMPT = """\
You are extracting comprehensive company information from website content for an employee onboarding content generation tool. This information will be used to create personalized onboarding content, so be thorough.

<website_content>
{content}
</website_content>

Extract the following information and return it as JSON:

1. "name": The official company name (not taglines)

2. "industry": The industry/sector they operate in (be specific, e.g. "HR Technology / Employee Experience Software" not just "Technology")

3. "description": A COMPREHENSIVE description of 800-2500 words covering:
   - Company Overview: what they do, who they serve, products and services, market position, size and locations
   - Mission, Vision & Values: stated mission, core values and what they mean in practice
   - Culture & Workplace: culture, team dynamics, work environment, benefits, DEI initiatives
   - People & Leadership: leadership team, founder story, notable people
   - Career & Growth: development programs, why people join and stay, employee testimonials
   - History & Achievements: founding story, milestones, awards, future direction

   Format the description as markdown: ## headings per section, **bold** for key
   terms, bullet lists for values and benefits, and > blockquotes for testimonials
   and mission statements. Quote the site VERBATIM where it states values,
   mission or testimonials rather than paraphrasing. Include names, numbers and
   concrete programs; avoid generic statements.

4. "logo": A logo image URL if one appears in the content, otherwise null.

5. "suggestedColors": brand colours as hex codes, or null when unknown:
   - "primary": main brand colour (logo, headers, CTAs)
   - "secondary": supporting colour (backgrounds, sections)
   - "accent": highlight colour (links, hover states)
   - "textColor": primary text colour (usually dark, e.g. #1a1a1a)
   - "buttonBg": button background (often the primary colour)
   - "buttonFg": button text colour (usually #FFFFFF)

Return ONLY valid JSON, no other text.
"""


def build_prompt(corpus: str) -> str:
    return EXTRACTION_PROMPT.format(content=corpus[: settings.corpus_char_budget])


def parse_extraction(text: str, url: str) -> Optional[ExtractionResult]:
    """First balanced JSON object in *text*, validated; ``None`` on any failure."""
    span = find_balanced(text or "", "{", "}")
    if span is None:
        return None
    try:
        extracted = ExtractionResult.model_validate(json.loads(span))
    except (ValueError, ValidationError) as exc:
        logger.debug(f"ExtractorAgent: invalid extraction JSON ({exc})")
        return None
    return extracted.model_copy(
        update={
            "name": (extracted.name or "").strip() or name_from_domain(url),
            "industry": extracted.industry or "",
            "description": extracted.description or "",
        }
    )


def default_extraction(url: str) -> ExtractionResult:
    return ExtractionResult(
        name=name_from_domain(url),
        industry="",
        description="",
        logo=None,
        suggested_colors=SuggestedColors(),
    )


class ExtractorAgent:
    """LLM-powered agent turning the page corpus into an ``ExtractionResult``."""

    def __init__(self, llm: TextGenerationClient) -> None:
        self._llm = llm

    async def run(
        self, corpus: str, url: str, on_chunk: Optional[ChunkHandler] = None
    ) -> ExtractionResult:
        prompt = build_prompt(corpus)
        logger.info(f"ExtractorAgent: extracting from {len(corpus)} chars of content")

        buffer = []
        try:
            async for fragment in self._llm.stream_complete(
                prompt, max_tokens=settings.extraction_max_tokens
            ):
                buffer.append(fragment)
                if on_chunk is not None:
                    await on_chunk(fragment)
        except Exception as exc:
            logger.error(f"ExtractorAgent: streaming extraction failed: {exc}")

        extracted = parse_extraction("".join(buffer), url)
        if extracted is not None:
            logger.success(f"ExtractorAgent: extracted profile for {extracted.name!r}")
            return extracted

        logger.warning("ExtractorAgent: streamed output unparseable; retrying without streaming.")
        try:
            text = await self._llm.complete(prompt, max_tokens=settings.extraction_max_tokens)
        except Exception as exc:
            logger.error(f"ExtractorAgent: non-streaming extraction failed: {exc}")
            text = ""
        extracted = parse_extraction(text, url)
        if extracted is not None:
            logger.success(f"ExtractorAgent: extracted profile for {extracted.name!r}")
            return extracted

        logger.warning(f"ExtractorAgent: using default extraction for {url}")
        return default_extraction(url)
