# services/ai/llm_service.py
from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Protocol

import openai

from services.openai.client import LLMConfig, get_openai_client

logger = logging.getLogger(__name__)


class LLMProviderError(RuntimeError):
    """Upstream provider failure, carrying the HTTP status it reported."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class LLMClient(Protocol):
    async def complete(self, *, prompt: str) -> str:
        """Return the raw assistant text for a single user prompt."""

    def stream(self, *, system: str, user: str) -> AsyncIterator[str]:
        """Yield assistant text deltas as they arrive."""


class OpenAIChatService:
    def __init__(self, config: Optional[LLMConfig] = None, client: Optional[openai.AsyncOpenAI] = None):
        self.config = config or LLMConfig.from_env()
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = get_openai_client(self.config)
        return self._client

    async def complete(self, *, prompt: str) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.config.narrative_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.narrative_temperature,
            )
        except openai.APIStatusError as e:
            logger.error("llm_complete_failed status=%s body=%s", e.status_code, e.message)
            raise LLMProviderError(e.status_code, f"AI error {e.status_code}") from e
        except openai.APIConnectionError as e:
            logger.error("llm_complete_unreachable error=%s", e)
            raise LLMProviderError(502, "AI provider unreachable") from e

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    async def stream(self, *, system: str, user: str) -> AsyncIterator[str]:
        try:
            chunks = await self.client.chat.completions.create(
                model=self.config.explain_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.config.explain_temperature,
                stream=True,
            )
        except openai.APIStatusError as e:
            logger.error("llm_stream_failed status=%s body=%s", e.status_code, e.message)
            raise LLMProviderError(e.status_code, f"AI error {e.status_code}") from e
        except openai.APIConnectionError as e:
            logger.error("llm_stream_unreachable error=%s", e)
            raise LLMProviderError(502, "AI provider unreachable") from e

        async for chunk in chunks:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta


_service: Optional[OpenAIChatService] = None


def get_llm_service() -> LLMClient:
    global _service
    if _service is None:
        _service = OpenAIChatService()
    return _service
