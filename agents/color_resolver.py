"""Color resolver agent.

Derives brand colours from the best-known logo (or, failing that, a page's
logo hint or a social preview image found in its content) and merges them
with the extractor's suggestions and hardcoded defaults.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional

from loguru import logger

from clients.palette_client import PaletteClient
from models.company import BrandColors, ImageColors, ScrapedPage, SuggestedColors
from utils.helpers import is_valid_hex

DEFAULT_PRIMARY = "#7C21CC"
DEFAULT_SECONDARY = "#342F46"
DEFAULT_ACCENT = "#008161"
DEFAULT_TEXT = "#1a1a1a"
DEFAULT_BUTTON_FG = "#FFFFFF"

OG_IMAGE_RE = re.compile(r"""og:image['"]\s*content=['"](https?://[^'"]+)""", re.IGNORECASE)


def _first_valid(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if is_valid_hex(value):
            return value
    return None


def _fallback_images(pages: List[ScrapedPage]) -> Iterator[str]:
    """Per page: its metadata logo hint, then a social preview image in its content."""
    for page in pages:
        if page.logo_hint:
            yield page.logo_hint
        match = OG_IMAGE_RE.search(page.content)
        if match:
            yield match.group(1)


def merge_colors(image: ImageColors, suggested: SuggestedColors) -> BrandColors:
    """First valid value wins: image-derived → suggested → default.

    Text and button colours have no image-derived source; ``buttonBg``
    defaults to the resolved primary.
    """
    primary = _first_valid(image.primary, suggested.primary) or DEFAULT_PRIMARY
    return BrandColors(
        primary=primary,
        secondary=_first_valid(image.secondary, suggested.secondary) or DEFAULT_SECONDARY,
        accent=_first_valid(image.accent, suggested.accent) or DEFAULT_ACCENT,
        text_color=_first_valid(suggested.text_color) or DEFAULT_TEXT,
        button_bg=_first_valid(suggested.button_bg) or primary,
        button_fg=_first_valid(suggested.button_fg) or DEFAULT_BUTTON_FG,
    )


class ColorResolverAgent:
    """Image palette lookup with page-image fallbacks; returns all-None on failure."""

    def __init__(self, client: PaletteClient) -> None:
        self._client = client

    async def run(self, pages: List[ScrapedPage], logo_url: Optional[str]) -> ImageColors:
        if logo_url:
            colors = await self._from_image(logo_url)
            if colors is not None:
                return colors

        tried = {logo_url}
        for image_url in _fallback_images(pages):
            if image_url in tried:
                continue
            tried.add(image_url)
            colors = await self._from_image(image_url)
            if colors is not None:
                return colors

        logger.info("ColorResolverAgent: no image-derived colours.")
        return ImageColors()

    async def _from_image(self, image_url: str) -> Optional[ImageColors]:
        try:
            palette = await self._client.palette_of(image_url)
        except Exception as exc:
            logger.warning(f"ColorResolverAgent: palette extraction failed for {image_url}: {exc}")
            return None
        colors = ImageColors.from_palette(palette)
        if colors.is_empty():
            return None
        logger.info(f"ColorResolverAgent: colours from {image_url}: {colors.model_dump()}")
        return colors
