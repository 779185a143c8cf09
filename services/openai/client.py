# services/openai/client.py
from __future__ import annotations

import os
from dataclasses import dataclass

from openai import AsyncOpenAI

_client: AsyncOpenAI | None = None


@dataclass
class LLMConfig:
    api_key: str = ""
    # any OpenAI-compatible gateway works here
    base_url: str = ""
    narrative_model: str = "gpt-4o"
    explain_model: str = "gpt-4o-mini"
    narrative_temperature: float = 0.7
    explain_temperature: float = 0.4
    timeout_s: float = 120.0

    @staticmethod
    def from_env() -> "LLMConfig":
        return LLMConfig(
            api_key=os.getenv("OPENAI_API_KEY", ""),
            base_url=os.getenv("OPENAI_BASE_URL", ""),
            narrative_model=os.getenv("NARRATIVE_MODEL") or "gpt-4o",
            explain_model=os.getenv("EXPLAIN_MODEL") or "gpt-4o-mini",
            narrative_temperature=float(os.getenv("NARRATIVE_TEMPERATURE", "0.7")),
            explain_temperature=float(os.getenv("EXPLAIN_TEMPERATURE", "0.4")),
            timeout_s=float(os.getenv("AI_TIMEOUT_S", "120")),
        )


def get_openai_client(config: LLMConfig | None = None) -> AsyncOpenAI:
    """
    Singleton async OpenAI client.
    Reused across requests to keep the underlying httpx pool warm.
    """
    global _client

    if _client is None:
        cfg = config or LLMConfig.from_env()
        if not cfg.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")
        _client = AsyncOpenAI(
            api_key=cfg.api_key,
            base_url=cfg.base_url or None,
            timeout=cfg.timeout_s,
        )

    return _client
