"""Text-generation client over OpenAI or Azure OpenAI chat completions."""

from __future__ import annotations

from typing import AsyncIterator, Optional, Union

import httpx
from azure.identity import DefaultAzureCredential, get_bearer_token_provider
from loguru import logger
from openai import AsyncAzureOpenAI, AsyncOpenAI

from config.settings import settings
from utils.errors import ConfigurationError, TextGenerationError


class TextGenerationClient:
    """
    Thin async wrapper exposing ``complete`` and ``stream_complete``.

    Azure OpenAI is used when ``AZURE_OPENAI_ENDPOINT`` is configured (API key
    or Entra ID), otherwise the public OpenAI API.  Construction fails with
    ``ConfigurationError`` when neither is available.
    """

    def __init__(self, model: Optional[str] = None) -> None:
        if not (settings.azure_openai_endpoint or settings.openai_api_key):
            raise ConfigurationError("OPENAI_API_KEY or AZURE_OPENAI_ENDPOINT not configured")

        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.llm_timeout_seconds, connect=settings.llm_connect_timeout_seconds
            )
        )
        self._llm: Union[AsyncOpenAI, AsyncAzureOpenAI]
        if settings.azure_openai_endpoint:
            client_kwargs: dict = {
                "azure_endpoint": settings.azure_openai_endpoint,
                "api_version": settings.azure_openai_api_version,
                "http_client": http_client,
            }
            if settings.azure_openai_api_key:
                client_kwargs["api_key"] = settings.azure_openai_api_key
            else:
                token_provider = get_bearer_token_provider(
                    DefaultAzureCredential(), "https://cognitiveservices.azure.com/.default"
                )
                client_kwargs["azure_ad_token_provider"] = token_provider
            self._llm = AsyncAzureOpenAI(**client_kwargs)
            self._model = model or settings.azure_openai_deployment
        else:
            self._llm = AsyncOpenAI(api_key=settings.openai_api_key, http_client=http_client)
            self._model = model or settings.openai_model

    async def complete(self, prompt: str, max_tokens: int) -> str:
        """Single-shot completion. Raises ``TextGenerationError`` on an empty reply."""
        response = await self._llm.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.0,
            max_tokens=max_tokens,
        )
        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise TextGenerationError("Text generation returned no content")
        return text

    async def stream_complete(self, prompt: str, max_tokens: int) -> AsyncIterator[str]:
        """Yield text fragments as they arrive."""
        stream = await self._llm.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.0,
            max_tokens=max_tokens,
            stream=True,
        )
        async for chunk in stream:
            delta = chunk.choices[0].delta.content if chunk.choices else None
            if delta:
                yield delta
        logger.debug("TextGenerationClient: stream finished.")

    async def aclose(self) -> None:
        await self._llm.close()
