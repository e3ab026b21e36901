"""Async clients for site enumeration and page fetching.

``FirecrawlClient`` talks to the Firecrawl REST API (map + scrape).  When no
Firecrawl key is configured ``HttpSiteClient`` does the same job directly:
sitemap.xml enumeration and HTML parsing with BeautifulSoup.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from config.settings import settings
from models.company import FetchedDocument
from utils.errors import FetchError, SiteMapError
from utils.helpers import origin_of

# Status codes that will not improve on retry.
_NO_RETRY_STATUSES = {401, 402, 403, 404, 429}


class SiteClient:
    """Common plumbing: lazily created shared ``httpx.AsyncClient`` and retries."""

    DEFAULT_HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout or settings.scrape_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "SiteClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._headers(),
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client

    def _headers(self) -> Dict[str, str]:
        return dict(self.DEFAULT_HEADERS)

    async def map_site(self, url: str, limit: int) -> List[str]:
        raise NotImplementedError

    async def fetch_page(self, url: str) -> FetchedDocument:
        """Fetch one page, retrying transient failures. Raises ``FetchError``."""
        last_error: Optional[FetchError] = None
        for attempt in range(1, settings.scrape_max_retries + 1):
            try:
                return await self._fetch_once(url)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                logger.warning(f"[attempt {attempt}] HTTP {status} for {url}")
                last_error = FetchError(url, f"HTTP {status}", status_code=status)
                if status in _NO_RETRY_STATUSES:
                    break
            except httpx.RequestError as exc:
                logger.warning(f"[attempt {attempt}] Request error for {url}: {exc}")
                last_error = FetchError(url, f"Request error: {exc}")
            if attempt < settings.scrape_max_retries:
                await asyncio.sleep(attempt * settings.scrape_delay_seconds)
        raise last_error or FetchError(url, "Fetch failed")

    async def _fetch_once(self, url: str) -> FetchedDocument:
        raise NotImplementedError


class FirecrawlClient(SiteClient):
    """Firecrawl REST API: ``/map`` for enumeration and ``/scrape`` for pages."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None) -> None:
        super().__init__()
        self._api_key = api_key or settings.firecrawl_api_key
        self._base_url = (base_url or settings.firecrawl_api_url).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def map_site(self, url: str, limit: int) -> List[str]:
        """Discover URLs on the site (sitemap + link crawl). Single attempt."""
        try:
            response = await self._http().post(
                f"{self._base_url}/map",
                json={"url": url, "limit": limit, "includeSubdomains": False},
                timeout=settings.map_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SiteMapError(f"Firecrawl map failed for {url}: {exc}") from exc

        if not payload.get("success", True):
            raise SiteMapError(f"Firecrawl map unsuccessful for {url}: {payload.get('error')}")
        links = []
        for link in payload.get("links") or []:
            value = link if isinstance(link, str) else (link or {}).get("url")
            if value:
                links.append(value)
        return links[:limit]

    async def _fetch_once(self, url: str) -> FetchedDocument:
        response = await self._http().post(
            f"{self._base_url}/scrape",
            json={"url": url, "formats": ["markdown", "links"]},
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(url, "Firecrawl returned invalid JSON") from exc
        if not payload.get("success", True):
            raise FetchError(url, f"Firecrawl scrape unsuccessful: {payload.get('error')}")

        data = payload.get("data") or {}
        metadata = data.get("metadata") or {}
        status_code = metadata.get("statusCode")
        if isinstance(status_code, int) and status_code >= 400:
            raise FetchError(url, f"Target returned HTTP {status_code}", status_code=status_code)
        return FetchedDocument(
            url=url,
            markdown=data.get("markdown") or "",
            links=[link for link in data.get("links") or [] if isinstance(link, str)],
            metadata=metadata,
        )


class HttpSiteClient(SiteClient):
    """Direct HTTP fallback: sitemap.xml for enumeration, BeautifulSoup for pages."""

    MAX_CHILD_SITEMAPS = 5

    async def map_site(self, url: str, limit: int) -> List[str]:
        origin = origin_of(url)
        sitemap_urls = await self._sitemaps_from_robots(origin) or [f"{origin}/sitemap.xml"]

        links: List[str] = []
        children: List[str] = []
        for sitemap_url in sitemap_urls:
            locs, nested = await self._read_sitemap(sitemap_url)
            links.extend(locs)
            children.extend(nested)
        for child in children[: self.MAX_CHILD_SITEMAPS]:
            if len(links) >= limit:
                break
            locs, _ = await self._read_sitemap(child)
            links.extend(locs)

        if not links:
            raise SiteMapError(f"No sitemap entries found for {origin}")
        return list(dict.fromkeys(links))[:limit]

    async def _sitemaps_from_robots(self, origin: str) -> List[str]:
        try:
            response = await self._http().get(f"{origin}/robots.txt")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug(f"robots.txt unavailable for {origin}: {exc}")
            return []
        found = []
        for line in response.text.splitlines():
            key, _, value = line.partition(":")
            if key.strip().lower() == "sitemap" and value.strip():
                found.append(value.strip())
        return found

    async def _read_sitemap(self, sitemap_url: str) -> Tuple[List[str], List[str]]:
        """Return ``(page_urls, child_sitemap_urls)`` for one sitemap document."""
        try:
            response = await self._http().get(sitemap_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug(f"Sitemap {sitemap_url} unavailable: {exc}")
            return [], []
        soup = BeautifulSoup(response.text, "html.parser")
        if soup.find("sitemapindex"):
            return [], [loc.get_text(strip=True) for loc in soup.find_all("loc")]
        return [loc.get_text(strip=True) for loc in soup.find_all("loc")], []

    async def _fetch_once(self, url: str) -> FetchedDocument:
        response = await self._http().get(url)
        response.raise_for_status()
        return parse_html_document(str(response.url), response.text)


def parse_html_document(url: str, html: str) -> FetchedDocument:
    """Turn raw HTML into a ``FetchedDocument`` (text, links, metadata)."""
    soup = BeautifulSoup(html, "html.parser")

    metadata: Dict[str, Any] = {}
    if soup.title and soup.title.string:
        metadata["title"] = soup.title.string.strip()
    og_image = soup.find("meta", attrs={"property": "og:image"})
    if og_image and og_image.get("content"):
        metadata["ogImage"] = urljoin(url, og_image["content"])
    icon = soup.find("link", rel=lambda value: bool(value) and "icon" in value.lower())
    if icon and icon.get("href"):
        metadata["favicon"] = urljoin(url, icon["href"])
    for img in soup.find_all("img"):
        marker = " ".join(
            [img.get("src") or "", img.get("alt") or "", " ".join(img.get("class") or [])]
        ).lower()
        if "logo" in marker and img.get("src"):
            metadata["logo"] = urljoin(url, img["src"])
            break

    links = [a["href"] for a in soup.find_all("a", href=True)]

    for tag in soup(["script", "style", "noscript", "svg"]):
        tag.decompose()
    body = soup.body or soup
    text = body.get_text(separator="\n", strip=True)
    return FetchedDocument(url=url, markdown=text, links=links, metadata=metadata)


def build_site_client() -> SiteClient:
    """Firecrawl when a key is configured, otherwise direct HTTP."""
    if settings.firecrawl_api_key:
        logger.debug("Using Firecrawl site client.")
        return FirecrawlClient()
    logger.info("FIRECRAWL_API_KEY not set; using direct HTTP site client.")
    return HttpSiteClient()
