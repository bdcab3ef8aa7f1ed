"""Completion client — ABC, OpenAI implementation, and mocks."""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class CompletionClient(ABC):
    """Opaque ``complete(prompt) -> text`` function.

    No retry or timeout semantics of its own; the fallback router supplies
    the timeout.
    """

    @abstractmethod
    async def complete(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# OpenAI implementation
# ---------------------------------------------------------------------------

class OpenAICompletionClient(CompletionClient):
    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 100,
    ) -> None:
        # Late import so the rest of the package works without openai installed
        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens

    async def complete(self, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._max_tokens,
            temperature=0.0,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Test mock — deterministic, pre-loaded responses
# ---------------------------------------------------------------------------

class MockCompletionClient(CompletionClient):
    """Returns pre-configured responses in order. Used in unit tests.

    ``delay`` makes every call sleep first, to exercise the fallback timeout.
    A response that is an exception instance is raised instead of returned.
    """

    def __init__(self, responses: list[str | Exception], delay: float = 0.0) -> None:
        self._responses = list(responses)
        self._delay = delay
        self._call_index = 0
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._call_index >= len(self._responses):
            return ""
        result = self._responses[self._call_index]
        self._call_index += 1
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def call_count(self) -> int:
        return len(self.prompts)


# ---------------------------------------------------------------------------
# Demo mock — echoes the user message, for running without an API key
# ---------------------------------------------------------------------------

_USER_MESSAGE_RE = re.compile(r'User message: "(.*)"\s*\n', re.DOTALL)


class DemoMockCompletionClient(CompletionClient):
    """Behaves like a model that never finds a command.

    Returns the quoted user message from the prompt unchanged, which the
    fallback router treats as "not a command".
    """

    async def complete(self, prompt: str) -> str:
        m = _USER_MESSAGE_RE.search(prompt)
        return m.group(1) if m else ""
