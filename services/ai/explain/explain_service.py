# services/ai/explain/explain_service.py
"""
Server side of the explain feature.

The LLM's deltas are re-emitted as OpenAI-style chat-completion chunks over
SSE so the dashboard can decode them with the same reader it would use
against the provider directly:

    data: {"choices":[{"delta":{"content":"..."}}]}

    data: [DONE]
"""
from __future__ import annotations

import json
import logging
import time
from typing import AsyncIterator, Optional

from schemas.explain import ExplainRequest
from services.ai.explain.explain_prompts import SYSTEM_PROMPT, build_user_prompt
from services.ai.llm_service import LLMClient, LLMProviderError, get_llm_service

logger = logging.getLogger(__name__)

DONE_EVENT = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def format_delta_chunk(text: str) -> str:
    payload = {"choices": [{"index": 0, "delta": {"content": text}}]}
    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


def provider_error_message(status_code: int) -> str:
    if status_code == 429:
        return "Rate limit exceeded, please try again later."
    if status_code == 402:
        return "AI credits exhausted, please add funds to continue."
    return "AI service error"


async def open_explanation_stream(
    req: ExplainRequest,
    llm: Optional[LLMClient] = None,
) -> AsyncIterator[str]:
    """
    Start the LLM stream and return an SSE body iterator.

    The first delta is awaited here so provider errors (bad key, 429, 402)
    raise LLMProviderError before any response headers go out.
    """
    llm = llm or get_llm_service()
    deltas = llm.stream(system=SYSTEM_PROMPT, user=build_user_prompt(req)).__aiter__()
    started = time.perf_counter()

    try:
        first: Optional[str] = await deltas.__anext__()
    except StopAsyncIteration:
        first = None

    async def body() -> AsyncIterator[str]:
        chars = 0
        try:
            if first:
                chars += len(first)
                yield format_delta_chunk(first)
            async for delta in deltas:
                chars += len(delta)
                yield format_delta_chunk(delta)
        except LLMProviderError as e:
            logger.error("explain_stream_aborted type=%s status=%s", req.type, e.status_code)
        except Exception:
            logger.exception("explain_stream_aborted type=%s", req.type)
        finally:
            logger.info(
                "explain_stream_finished type=%s chars=%d duration_ms=%.1f",
                req.type, chars, (time.perf_counter() - started) * 1000,
            )
        yield DONE_EVENT

    return body()
