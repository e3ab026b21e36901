"""Brave Image Search client used to look up company logos."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
from loguru import logger

from config.settings import settings
from models.company import ImageResult
from utils.errors import LogoSearchError

MAX_COUNT = 20


class ImageSearchClient:
    """Async client for the Brave Image Search API."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self._api_key = api_key if api_key is not None else settings.brave_search_api_key
        self._timeout = timeout or settings.image_search_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ImageSearchClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def search_images(self, query: str, max_results: int) -> List[ImageResult]:
        """Run one image search. Raises ``LogoSearchError`` with a failure code."""
        if not self._api_key:
            raise LogoSearchError("BRAVE_SEARCH_API_KEY not configured", "CONFIG_ERROR")

        params = {
            "q": query,
            "count": str(min(max_results, MAX_COUNT)),
            "safesearch": "strict",
            "spellcheck": "false",
        }
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
            "X-Subscription-Token": self._api_key,
        }
        logger.debug(f"ImageSearchClient: searching for {query!r}")
        try:
            response = await self._http().get(
                settings.brave_image_search_url, params=params, headers=headers
            )
        except httpx.RequestError as exc:
            raise LogoSearchError(f"Logo search failed: {exc}", "SEARCH_FAILED") from exc

        if response.status_code == 401:
            raise LogoSearchError("Invalid Brave Search API key", "AUTH_ERROR")
        if response.status_code == 429:
            raise LogoSearchError("Brave Search rate limit exceeded", "RATE_LIMIT")
        if response.status_code >= 400:
            raise LogoSearchError(
                f"Brave Image Search API error: {response.status_code}", "API_ERROR"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise LogoSearchError("Brave Image Search returned invalid JSON", "API_ERROR") from exc
        return [_to_image_result(item) for item in payload.get("results") or [] if item.get("url")]


def _to_image_result(item: dict) -> ImageResult:
    properties = item.get("properties") or {}
    thumbnail = item.get("thumbnail") or {}
    meta_url = item.get("meta_url") or {}
    return ImageResult(
        title=item.get("title") or "",
        url=item["url"],
        image_url=properties.get("url"),
        thumbnail_url=thumbnail.get("src"),
        source=meta_url.get("hostname") or item.get("source"),
        width=properties.get("width"),
        height=properties.get("height"),
    )
