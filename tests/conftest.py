"""
Pytest configuration and shared fixtures.

In-memory fakes stand in for the four service boundaries (site service,
text generation, image search, palette extraction); no test touches the
network.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from config.settings import settings
from models.company import FetchedDocument, ImageResult, Palette
from utils.errors import FetchError, PaletteError, TextGenerationError


def make_doc(url: str, title: Optional[str] = None, markdown: str = "", links=(), **metadata) -> FetchedDocument:
    if title is not None:
        metadata["title"] = title
    return FetchedDocument(url=url, markdown=markdown, links=list(links), metadata=metadata)


class FakeSiteClient:
    """Serves canned documents and records concurrency."""

    def __init__(
        self,
        pages: Optional[Dict[str, Union[FetchedDocument, Exception]]] = None,
        links: Optional[List[str]] = None,
        map_error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.pages = dict(pages or {})
        self.links = list(links or [])
        self.map_error = map_error
        self.delay = delay
        self.map_calls: List[str] = []
        self.fetch_calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def map_site(self, url: str, limit: int) -> List[str]:
        self.map_calls.append(url)
        if self.map_error is not None:
            raise self.map_error
        return self.links[:limit]

    async def fetch_page(self, url: str) -> FetchedDocument:
        self.fetch_calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "HTTP 404", status_code=404)
        if isinstance(page, Exception):
            raise page
        return page

    async def aclose(self) -> None:
        self.closed = True


class FakeLLM:
    """Answers selection prompts with ``selection`` and extraction prompts with the stream."""

    def __init__(
        self,
        selection: str = "[]",
        stream: Optional[List[str]] = None,
        completion: Optional[str] = None,
        stream_error: Optional[Exception] = None,
    ) -> None:
        self.selection = selection
        self.stream = list(stream or [])
        self.completion = completion
        self.stream_error = stream_error
        self.prompts: List[str] = []

    async def complete(self, prompt: str, max_tokens: int) -> str:
        self.prompts.append(prompt)
        if "<homepage>" in prompt:
            return self.selection
        if self.completion is None:
            raise TextGenerationError("Text generation returned no content")
        return self.completion

    async def stream_complete(self, prompt: str, max_tokens: int):
        self.prompts.append(prompt)
        for fragment in self.stream:
            await asyncio.sleep(0)
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


class FakeImageSearch:
    def __init__(
        self,
        results: Optional[Dict[str, List[ImageResult]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.results = dict(results or {})
        self.error = error
        self.queries: List[str] = []

    async def search_images(self, query: str, max_results: int) -> List[ImageResult]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results.get(query, [])[:max_results]


class FakePalette:
    def __init__(self, palettes: Optional[Dict[str, Palette]] = None) -> None:
        self.palettes = dict(palettes or {})
        self.requests: List[str] = []

    async def palette_of(self, image_url: str) -> Palette:
        self.requests.append(image_url)
        if image_url not in self.palettes:
            raise PaletteError(f"Could not download {image_url}")
        return self.palettes[image_url]


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Keep retries and timeouts short."""
    monkeypatch.setattr(settings, "scrape_delay_seconds", 0.0)
    monkeypatch.setattr(settings, "scrape_timeout_seconds", 2.0)
    monkeypatch.setattr(settings, "map_timeout_seconds", 2.0)
    monkeypatch.setattr(settings, "brave_search_api_key", "")


