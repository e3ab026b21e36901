"""Tests for the logo search and candidate filtering."""

import pytest

from agents.logo_resolver import LogoResolverAgent, build_query, looks_like_logo, to_candidates
from conftest import FakeImageSearch
from models.company import ImageResult
from utils.errors import LogoSearchError


def _hit(url, title="", **kwargs):
    return ImageResult(url=url, title=title, **kwargs)


class TestFiltering:
    def test_query_strips_trailing_punctuation(self):
        assert build_query("Acme Inc.") == "Acme Inc logo transparent png"

    def test_logo_mentions_beat_avatar_markers(self):
        assert looks_like_logo(_hit("https://cdn.x.com/profile/logo.png"))
        assert looks_like_logo(_hit("https://cdn.x.com/favicon.ico", title="Acme brand mark"))
        assert not looks_like_logo(_hit("https://cdn.x.com/avatar/123.png", title="Jane"))
        assert looks_like_logo(_hit("https://cdn.x.com/img/123.png", title="Acme"))

    def test_candidates_prefer_full_image_url(self):
        results = [
            _hit(
                "https://page.x.com/acme",
                title="Acme logo",
                image_url="https://img.x.com/acme.png",
                thumbnail_url="https://img.x.com/t.png",
                source="x.com",
                width=400,
                height=100,
            ),
            _hit("https://img.x.com/avatar.png"),
            _hit("https://img.x.com/plain.png"),
        ]
        candidates = to_candidates(results, max_results=6)

        assert [c.url for c in candidates] == ["https://img.x.com/acme.png", "https://img.x.com/plain.png"]
        assert candidates[0].width == 400
        assert candidates[1].thumbnail_url == "https://img.x.com/plain.png"
        assert candidates[1].title == "Logo"
        assert candidates[1].source == "Unknown"

    def test_max_results_applies_after_filtering(self):
        results = [_hit(f"https://img.x.com/logo{i}.png") for i in range(10)]
        assert len(to_candidates(results, max_results=6)) == 6


class TestLogoResolverAgent:
    @pytest.mark.asyncio
    async def test_first_query_hit(self):
        search = FakeImageSearch(results={"Acme logo transparent png": [_hit("https://img.x.com/acme-logo.png")]})
        result = await LogoResolverAgent(search).run("Acme", "https://acme.com")

        assert result.candidates[0].url == "https://img.x.com/acme-logo.png"
        assert result.query == "Acme logo transparent png"
        assert search.queries == ["Acme logo transparent png"]

    @pytest.mark.asyncio
    async def test_retries_with_domain_name(self):
        search = FakeImageSearch(results={"Globex logo transparent png": [_hit("https://img.x.com/globex.png")]})
        result = await LogoResolverAgent(search).run("Global Exports Ltd", "https://globex.com")

        assert search.queries == ["Global Exports Ltd logo transparent png", "Globex logo transparent png"]
        assert result.candidates[0].url == "https://img.x.com/globex.png"

    @pytest.mark.asyncio
    async def test_no_retry_when_domain_name_matches(self):
        search = FakeImageSearch()
        result = await LogoResolverAgent(search).run("acme", "https://acme.com")

        assert search.queries == ["acme logo transparent png"]
        assert result.candidates == []

    @pytest.mark.asyncio
    async def test_search_errors_are_swallowed(self):
        search = FakeImageSearch(error=LogoSearchError("BRAVE_SEARCH_API_KEY not configured", "CONFIG_ERROR"))
        result = await LogoResolverAgent(search).run("Acme", "https://globex.com")

        assert result.candidates == []
        assert len(search.queries) == 2
