"""Tests for link filtering and selection parsing."""

import pytest

from agents.page_selector import PageSelectorAgent, filter_links, parse_candidates
from conftest import FakeLLM


class TestParseCandidates:
    def test_sorts_by_priority_keeping_ties_stable(self):
        text = """[
            {"url": "https://x.com/blog", "reason": "Blog", "priority": 3},
            {"url": "https://x.com/careers", "reason": "Careers", "priority": 9},
            {"url": "https://x.com/about", "reason": "About", "priority": 9},
            {"url": "https://x.com/pricing", "reason": "Pricing", "priority": 1}
        ]"""
        candidates = parse_candidates(text)

        assert [c.priority for c in candidates] == [9, 9, 3, 1]
        assert [c.url for c in candidates[:2]] == ["https://x.com/careers", "https://x.com/about"]

    def test_array_wrapped_in_prose(self):
        text = 'Sure! Here are the pages:\n[{"url": "https://x.com/team", "reason": "Team", "priority": 8}]\nDone.'
        assert [c.url for c in parse_candidates(text)] == ["https://x.com/team"]

    def test_invalid_entries_are_dropped_individually(self):
        text = """[
            {"url": "https://x.com/about", "reason": "About", "priority": 9},
            {"url": "https://x.com/blog", "reason": "Blog", "priority": 42},
            {"url": "https://x.com/jobs", "reason": "Jobs", "priority": "high"},
            {"reason": "No url", "priority": 7},
            {"url": "https://x.com/team", "reason": "Team", "priority": 10}
        ]"""
        assert [c.url for c in parse_candidates(text)] == ["https://x.com/team", "https://x.com/about"]

    @pytest.mark.parametrize(
        "text",
        [
            "I could not find anything useful.",
            '[{"url": "https://x.com", "priority": "high"}]',
            '[{"url": "https://x.com", "priority": 42}]',
            "[not json]",
            "",
        ],
    )
    def test_unusable_output_yields_empty(self, text):
        assert parse_candidates(text) == []


class TestFilterLinks:
    def test_drops_denylisted_and_duplicates(self):
        links = [
            "https://x.com/about",
            "https://x.com/login",
            "https://x.com/about",
            "https://x.com/privacy-policy",
            "https://x.com/brochure.pdf",
            "https://x.com/careers",
        ]
        assert filter_links(links) == ["https://x.com/about", "https://x.com/careers"]

    def test_caps_at_candidate_limit(self):
        links = [f"https://x.com/page-{i}" for i in range(150)]
        assert len(filter_links(links)) == 100


class TestPageSelectorAgent:
    @pytest.mark.asyncio
    async def test_no_links_skips_the_request(self):
        llm = FakeLLM()
        assert await PageSelectorAgent(llm).run("home", [], max_pages=5) == []
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_prompt_carries_links_and_page_budget(self):
        llm = FakeLLM(selection='[{"url": "https://x.com/about", "reason": "About", "priority": 10}]')
        result = await PageSelectorAgent(llm).run("Welcome", ["https://x.com/about"], max_pages=7)

        assert [c.url for c in result] == ["https://x.com/about"]
        assert "https://x.com/about" in llm.prompts[0]
        assert "Select up to 7 pages" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_request_failure_degrades_to_empty(self):
        class BrokenLLM(FakeLLM):
            async def complete(self, prompt, max_tokens):
                raise RuntimeError("boom")

        assert await PageSelectorAgent(BrokenLLM()).run("home", ["https://x.com/a"], 3) == []
