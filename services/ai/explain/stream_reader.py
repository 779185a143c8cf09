# services/ai/explain/stream_reader.py
"""
Client side of the explain feature: turn a text/event-stream body of
chat-completion chunks back into the running explanation text.
"""
from __future__ import annotations

import codecs
import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from schemas.explain import ExplainRequest

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class ExplainError(RuntimeError):
    pass


class ExplainStreamDecoder:
    """
    Incremental SSE reassembler.

    feed() takes raw bytes as they arrive off the socket and returns the
    content deltas completed by them. A data line whose JSON doesn't parse is
    put back at the front of the buffer and retried once more bytes arrive.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.text = ""
        self.done = False

    def feed(self, chunk: bytes) -> List[str]:
        if self.done:
            return []
        self._buffer += self._utf8.decode(chunk)
        return self._drain()

    def close(self) -> List[str]:
        """End of stream: last attempt at anything still buffered."""
        if self.done:
            return []
        self._buffer += self._utf8.decode(b"", final=True)
        if self._buffer and not self._buffer.endswith("\n"):
            self._buffer += "\n"

        deltas: List[str] = []
        while self._buffer and not self.done:
            deltas.extend(self._drain())
            if self._buffer and not self.done:
                # unparseable line at the head; drop it and keep going
                dropped, _, self._buffer = self._buffer.partition("\n")
                logger.warning("explain_stream_dropped_line length=%d", len(dropped))
        self._buffer = ""
        return deltas

    def _drain(self) -> List[str]:
        deltas: List[str] = []
        while not self.done:
            idx = self._buffer.find("\n")
            if idx == -1:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]
            if line.endswith("\r"):
                line = line[:-1]

            if line.startswith(":") or line.strip() == "":
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                break

            try:
                parsed = json.loads(payload)
            except json.JSONDecodeError:
                self._buffer = line + "\n" + self._buffer
                break

            content = _delta_content(parsed)
            if content:
                self.text += content
                deltas.append(content)
        return deltas


def _delta_content(parsed: Any) -> Optional[str]:
    try:
        content = parsed["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


async def decode_explanation(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield the running explanation after every chunk that added text."""
    decoder = ExplainStreamDecoder()
    async for chunk in chunks:
        if decoder.feed(chunk):
            yield decoder.text
        if decoder.done:
            return
    if decoder.close():
        yield decoder.text


class ExplainClient:
    """Calls POST /api/ai/explain and streams the explanation back."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        timeout_s: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.getenv("NARRATIVE_API_URL", "http://localhost:8000")).rstrip("/")
        self.api_key = api_key if api_key is not None else os.getenv("NARRATIVE_API_KEY", "")
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def stream(self, req: ExplainRequest, path: str = "/api/ai/explain") -> AsyncIterator[str]:
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            async with client.stream(
                "POST",
                f"{self.base_url}{path}",
                headers=self._headers(),
                json=req.model_dump(exclude_none=True),
            ) as resp:
                if resp.status_code < 200 or resp.status_code >= 300:
                    raise ExplainError(await _error_message(resp))

                saw_body = False
                decoder = ExplainStreamDecoder()
                async for chunk in resp.aiter_bytes():
                    saw_body = saw_body or bool(chunk)
                    if decoder.feed(chunk):
                        yield decoder.text
                    if decoder.done:
                        return
                if not saw_body:
                    raise ExplainError("No response body")
                if decoder.close():
                    yield decoder.text

    async def explain(self, req: ExplainRequest) -> str:
        text = ""
        async for text in self.stream(req):
            pass
        return text


async def _error_message(resp: httpx.Response) -> str:
    await resp.aread()
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Error {resp.status_code}"
