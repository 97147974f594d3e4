"""
Question processor: one question in, one generated answer out.

Each question gets a fresh two-turn conversation (system instruction plus the
question); nothing is remembered between questions.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import TYPE_CHECKING, Dict, List, Literal, Protocol

import httpx
from openai import AsyncOpenAI

from .errors import EmptyCompletionError, to_completion_error
from .ollama_service import OllamaBackend

if TYPE_CHECKING:
    from chatbridge.config.loader import Settings

SYSTEM_PROMPT = "You are a helpful assistant."


@dataclass(frozen=True)
class Turn:
    role: Literal["system", "user", "assistant"]
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def build_conversation(question: str) -> List[Turn]:
    return [
        Turn(role="system", content=SYSTEM_PROMPT),
        Turn(role="user", content=question),
    ]


class CompletionBackend(Protocol):
    async def complete(self, model: str, messages: List[Dict[str, str]]) -> List[str]:
        """Return the candidate replies, in provider order."""
        ...


class OpenAIBackend:
    def __init__(self, client: AsyncOpenAI):
        self.client = client

    async def complete(self, model: str, messages: List[Dict[str, str]]) -> List[str]:
        response = await self.client.chat.completions.create(model=model, messages=messages)
        return [choice.message.content or "" for choice in response.choices or []]


def build_openai_client(settings: "Settings") -> AsyncOpenAI:
    # No retries and, unless configured, no timeout: a slow answer holds the queue.
    # AsyncOpenAI refuses an empty key at construction; the placeholder defers the
    # failure to the first request, where it surfaces as a CompletionAuthError.
    return AsyncOpenAI(
        api_key=settings.openai_api_key or "sk-no-key-required",
        base_url=settings.base_url,
        max_retries=0,
        http_client=httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout)),
    )


def build_backend(settings: "Settings") -> CompletionBackend:
    if settings.provider == "ollama":
        return OllamaBackend(host=settings.base_url, api_key=os.getenv("OLLAMA_API_KEY"))
    return OpenAIBackend(build_openai_client(settings))


class QuestionProcessor:
    def __init__(self, backend: CompletionBackend, model: str):
        self.backend = backend
        self.model = model

    async def process(self, question: str) -> str:
        """
        Ask the completion service one question and return the first candidate.

        Raises:
            CompletionError: the call failed or returned no candidates
        """
        conversation = build_conversation(question)
        try:
            candidates = await self.backend.complete(self.model, [t.as_dict() for t in conversation])
        except Exception as e:  # noqa: BLE001
            raise to_completion_error(e) from e

        if not candidates:
            raise EmptyCompletionError(f"model {self.model!r} returned no candidates")
        logging.debug("Completion returned %d candidate(s)", len(candidates))
        return candidates[0]
