"""Tests for the streaming company info extractor."""

import json

import pytest

from agents.extractor import ExtractorAgent, build_prompt, parse_extraction
from conftest import FakeLLM

PROFILE_JSON = json.dumps(
    {
        "name": "Acme",
        "industry": "Industrial Automation",
        "description": "## Company Overview\nAcme builds robots.",
        "logo": "https://acme.com/logo.png",
        "suggestedColors": {"primary": "#112233", "textColor": "#222", "buttonFg": "white"},
    }
)


class TestParseExtraction:
    def test_valid_json_in_prose(self):
        result = parse_extraction(f"Here is the data:\n```json\n{PROFILE_JSON}\n```", "https://acme.com")

        assert result.name == "Acme"
        assert result.logo == "https://acme.com/logo.png"
        assert result.suggested_colors.primary == "#112233"
        assert result.suggested_colors.text_color == "#222222"
        assert result.suggested_colors.button_fg is None

    def test_missing_fields_get_defaults(self):
        result = parse_extraction('{"logo": "data:image/png;base64,xyz", "suggestedColors": "n/a"}', "https://initech.com")

        assert result.name == "Initech"
        assert result.industry == ""
        assert result.description == ""
        assert result.logo is None
        assert result.suggested_colors.primary is None

    def test_prose_only_is_none(self):
        assert parse_extraction("I cannot help with that.", "https://acme.com") is None

    def test_prompt_truncates_corpus(self, monkeypatch):
        from config.settings import settings

        monkeypatch.setattr(settings, "corpus_char_budget", 10)
        assert "0123456789" in build_prompt("0123456789ABCDEF")
        assert "ABCDEF" not in build_prompt("0123456789ABCDEF")


class TestExtractorAgent:
    @pytest.mark.asyncio
    async def test_streams_fragments_to_handler(self):
        fragments = [PROFILE_JSON[:20], PROFILE_JSON[20:60], PROFILE_JSON[60:]]
        llm = FakeLLM(stream=fragments)
        received = []

        async def on_chunk(fragment):
            received.append(fragment)

        result = await ExtractorAgent(llm).run("corpus", "https://acme.com", on_chunk=on_chunk)

        assert received == fragments
        assert result.name == "Acme"
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_non_streaming_request(self):
        llm = FakeLLM(stream=["Sorry, ", "no JSON."], completion=PROFILE_JSON)
        received = []

        async def on_chunk(fragment):
            received.append(fragment)

        result = await ExtractorAgent(llm).run("corpus", "https://acme.com", on_chunk=on_chunk)

        assert received == ["Sorry, ", "no JSON."]
        assert result.industry == "Industrial Automation"

    @pytest.mark.asyncio
    async def test_default_when_every_attempt_fails(self):
        llm = FakeLLM(stream=["not json"], completion="still not json")
        result = await ExtractorAgent(llm).run("corpus", "https://www.globex.com")

        assert result.name == "Globex"
        assert result.description == ""
        assert result.suggested_colors.primary is None

    @pytest.mark.asyncio
    async def test_stream_error_keeps_partial_output(self):
        llm = FakeLLM(stream=[PROFILE_JSON], stream_error=RuntimeError("connection reset"))
        result = await ExtractorAgent(llm).run("corpus", "https://acme.com")
        assert result.name == "Acme"
