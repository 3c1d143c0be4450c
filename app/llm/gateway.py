"""
LLM Gateway — Groq chat completions in JSON mode for incident classification.

Transient provider errors are retried with exponential backoff. Quota
exhaustion is not retried: it surfaces as RateLimitError so the analyzer can
skip the incident and move on to the next one.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import groq
from groq import Groq

from app.config import settings
from app.core.errors import RateLimitError

logger = logging.getLogger("codrel.llm")

SYSTEM_PROMPT = "You classify repository incidents. Reply with one JSON object and nothing else."

_FENCE = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL)


class LLMGateway:
    """Async facade over the synchronous Groq SDK; tracks tokens across calls."""

    def __init__(self, client: Groq | None = None) -> None:
        self.client = client or Groq(
            api_key=settings.groq_api_key, timeout=settings.llm_timeout
        )
        self.model = settings.incident_model
        self.max_retries = max(1, settings.llm_max_retries)
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens
        self.total_tokens_used = 0

    async def complete(self, prompt: str, system: str = SYSTEM_PROMPT) -> dict[str, Any]:
        """
        Run one classification prompt.

        Returns:
            {"content", "parsed", "tokens_used", "success"}; "error" is added
            when every attempt failed.

        Raises:
            RateLimitError: the provider rejected the call for quota reasons.
        """
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await asyncio.to_thread(self._create, messages)
            except groq.RateLimitError as e:
                logger.warning(f"LLM rate limited: {e}")
                raise RateLimitError("LLM quota exhausted") from e
            except groq.APIError as e:
                last_error = e
                logger.warning(f"LLM attempt {attempt}/{self.max_retries} failed: {e}")
                if attempt < self.max_retries:
                    await asyncio.sleep(2 ** (attempt - 1))
                continue
            return self._to_result(response)

        logger.error(f"LLM gateway gave up after {self.max_retries} attempts: {last_error}")
        return {
            "content": "",
            "parsed": None,
            "tokens_used": 0,
            "success": False,
            "error": str(last_error),
        }

    def get_tokens_used(self) -> int:
        return self.total_tokens_used

    def _create(self, messages: list[dict[str, str]]):
        return self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )

    def _to_result(self, response) -> dict[str, Any]:
        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", 0) or 0
        self.total_tokens_used += tokens

        parsed = extract_json(content)
        return {
            "content": content,
            "parsed": parsed,
            "tokens_used": tokens,
            "success": parsed is not None,
        }


def extract_json(text: str) -> dict | None:
    """
    First JSON object in `text`: the whole string, a ```json fence, or the
    first decodable {...} embedded in prose.
    """
    candidates = [text]
    fenced = _FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1))

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None
