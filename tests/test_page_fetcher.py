"""Tests for homepage scanning and batched page fetching."""

import pytest

from agents.page_fetcher import PageFetcherAgent
from conftest import FakeSiteClient, make_doc
from models.company import PageCandidate
from utils.errors import FetchError


def _candidates(*paths, priority=5):
    return [PageCandidate(url=f"https://acme.com{p}", reason=p.strip("/").title(), priority=priority) for p in paths]


async def _collect(agent, candidates, limit, attempted):
    batches = []
    async for batch in agent.fetch_batches(candidates, limit, attempted):
        batches.append(batch)
    return batches


class TestHomepage:
    @pytest.mark.asyncio
    async def test_homepage_scan_carries_links_and_logo_hint(self):
        client = FakeSiteClient(
            pages={
                "https://acme.com": make_doc(
                    "https://acme.com",
                    title="Acme",
                    markdown="Welcome",
                    links=["/about"],
                    ogImage="https://acme.com/og.png",
                )
            }
        )
        scan = await PageFetcherAgent(client).fetch_homepage("https://acme.com")

        assert scan.page.title == "Acme"
        assert scan.page.logo_hint == "https://acme.com/og.png"
        assert scan.links == ["/about"]

    @pytest.mark.asyncio
    async def test_homepage_failure_raises(self):
        with pytest.raises(FetchError):
            await PageFetcherAgent(FakeSiteClient()).fetch_homepage("https://acme.com")

    @pytest.mark.asyncio
    async def test_untitled_homepage_gets_default_title(self):
        client = FakeSiteClient(pages={"https://acme.com": make_doc("https://acme.com", markdown="hi")})
        scan = await PageFetcherAgent(client).fetch_homepage("https://acme.com")
        assert scan.page.title == "Homepage"


class TestBatches:
    @pytest.mark.asyncio
    async def test_at_most_five_in_flight(self):
        paths = [f"/p{i}" for i in range(12)]
        client = FakeSiteClient(
            pages={f"https://acme.com{p}": make_doc(f"https://acme.com{p}", title=p) for p in paths},
            delay=0.01,
        )
        batches = await _collect(PageFetcherAgent(client), _candidates(*paths), 12, set())

        assert [len(b) for b in batches] == [5, 5, 2]
        assert client.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_pages_come_back_in_candidate_order(self):
        paths = ["/about", "/careers", "/team"]
        client = FakeSiteClient(pages={f"https://acme.com{p}": make_doc(f"https://acme.com{p}") for p in paths})
        batches = await _collect(PageFetcherAgent(client), _candidates(*paths), 10, set())

        assert [page.url for page in batches[0]] == [f"https://acme.com{p}" for p in paths]
        assert [page.title for page in batches[0]] == ["About", "Careers", "Team"]

    @pytest.mark.asyncio
    async def test_failed_page_does_not_affect_siblings(self):
        client = FakeSiteClient(
            pages={
                "https://acme.com/about": make_doc("https://acme.com/about", title="About us"),
                "https://acme.com/broken": RuntimeError("socket closed"),
                "https://acme.com/team": make_doc("https://acme.com/team", title="Team"),
            }
        )
        attempted = set()
        batches = await _collect(
            PageFetcherAgent(client), _candidates("/about", "/broken", "/missing", "/team"), 10, attempted
        )

        assert [page.title for page in batches[0]] == ["About us", "Team"]
        assert "https://acme.com/broken" in attempted
        assert "https://acme.com/missing" in attempted

    @pytest.mark.asyncio
    async def test_respects_limit_and_skips_attempted(self):
        paths = ["/", "/about", "/about/", "/careers", "/team"]
        client = FakeSiteClient(pages={f"https://acme.com{p}": make_doc(f"https://acme.com{p}") for p in paths})
        attempted = {"https://acme.com"}
        batches = await _collect(PageFetcherAgent(client), _candidates(*paths), 2, attempted)

        assert client.fetch_calls == ["https://acme.com/about", "https://acme.com/careers"]
        assert sum(len(b) for b in batches) == 2

    @pytest.mark.asyncio
    async def test_nothing_to_fetch(self):
        client = FakeSiteClient()
        assert await _collect(PageFetcherAgent(client), [], 5, set()) == []
        assert client.fetch_calls == []
