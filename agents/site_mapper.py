"""Site mapper agent.

Enumerates candidate URLs on the target site through the site service and
keeps only same-origin links.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from loguru import logger

from clients.site_client import SiteClient
from config.settings import settings
from utils.helpers import same_origin_links

_CAREER_MARKERS = ("career", "job", "work-with", "join-us", "hiring", "opportunities")


class SiteMapperAgent:
    """
    Single attempt, no retries.  Any failure (timeout, unsupported site,
    quota) is logged and yields an empty list; the homepage links then
    stand in for the map.
    """

    def __init__(self, client: SiteClient, limit: Optional[int] = None) -> None:
        self._client = client
        self._limit = limit or settings.site_map_limit

    async def run(self, url: str) -> List[str]:
        logger.info(f"SiteMapperAgent: mapping {url} (limit={self._limit})")
        try:
            raw_links = await asyncio.wait_for(
                self._client.map_site(url, self._limit),
                timeout=settings.map_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"SiteMapperAgent: timed out after {settings.map_timeout_seconds}s; "
                "falling back to homepage links."
            )
            return []
        except Exception as exc:
            logger.warning(f"SiteMapperAgent: map failed, falling back to homepage links: {exc}")
            return []

        links = list(dict.fromkeys(same_origin_links(raw_links, url)))
        logger.info(f"SiteMapperAgent: discovered {len(links)} same-origin URLs.")

        career_urls = [link for link in links if any(m in link.lower() for m in _CAREER_MARKERS)]
        if career_urls:
            logger.debug(f"SiteMapperAgent: {len(career_urls)} career-related URLs: {career_urls}")
        return links
