"""Tests for the question processor and completion error mapping."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from chatbridge.config.loader import Settings
from chatbridge.llm.errors import (
    CompletionAuthError,
    CompletionConnectionError,
    CompletionError,
    CompletionNotFoundError,
    CompletionRateLimitError,
    EmptyCompletionError,
    parse_error_message,
    to_completion_error,
)
from chatbridge.llm.ollama_service import OllamaBackend
from chatbridge.llm.processor import (
    SYSTEM_PROMPT,
    OpenAIBackend,
    QuestionProcessor,
    Turn,
    build_backend,
    build_conversation,
    build_openai_client,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def make_settings(**overrides):
    values = dict(
        openai_api_key="sk-test",
        model_name="gpt-test",
        google_credentials="{}",
        space_name="spaces/AAAA1234",
    )
    values.update(overrides)
    return Settings(**values)


def completion(*contents):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=c)) for c in contents]
    )


def test_build_conversation_has_system_and_user_turns():
    conversation = build_conversation("what is 2+2")

    assert conversation == [
        Turn(role="system", content=SYSTEM_PROMPT),
        Turn(role="user", content="what is 2+2"),
    ]
    assert SYSTEM_PROMPT == "You are a helpful assistant."


def test_build_conversation_is_fresh_each_time():
    first = build_conversation("one")
    second = build_conversation("two")

    assert first is not second
    assert [t.content for t in second] == [SYSTEM_PROMPT, "two"]


@pytest.mark.asyncio
async def test_process_returns_first_candidate_unmodified():
    backend = MagicMock()
    backend.complete = AsyncMock(return_value=["  first answer\n", "second answer"])

    answer = await QuestionProcessor(backend, "gpt-test").process("hi")

    assert answer == "  first answer\n"
    backend.complete.assert_awaited_once_with(
        "gpt-test",
        [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": "hi"}],
    )


@pytest.mark.asyncio
async def test_process_rejects_zero_candidates():
    backend = MagicMock()
    backend.complete = AsyncMock(return_value=[])

    with pytest.raises(EmptyCompletionError):
        await QuestionProcessor(backend, "gpt-test").process("hi")


@pytest.mark.asyncio
async def test_process_wraps_backend_errors():
    cause = openai.APIConnectionError(request=REQUEST)
    backend = MagicMock()
    backend.complete = AsyncMock(side_effect=cause)

    with pytest.raises(CompletionConnectionError) as excinfo:
        await QuestionProcessor(backend, "gpt-test").process("hi")

    assert excinfo.value.__cause__ is cause


@pytest.mark.asyncio
async def test_openai_backend_sends_only_model_and_messages():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion("4", "four"))
    messages = [t.as_dict() for t in build_conversation("what is 2+2")]

    candidates = await OpenAIBackend(client).complete("gpt-test", messages)

    assert candidates == ["4", "four"]
    client.chat.completions.create.assert_awaited_once_with(model="gpt-test", messages=messages)


@pytest.mark.asyncio
async def test_openai_backend_handles_null_content():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion(None))

    assert await OpenAIBackend(client).complete("gpt-test", []) == [""]


@pytest.mark.asyncio
async def test_ollama_backend_returns_message_content():
    backend = OllamaBackend(host="http://localhost:11434")
    backend.client = MagicMock()
    backend.client.chat = AsyncMock(return_value=SimpleNamespace(message=SimpleNamespace(content="4")))

    assert await backend.complete("llama3", [{"role": "user", "content": "2+2"}]) == ["4"]
    backend.client.chat.assert_awaited_once_with(model="llama3", messages=[{"role": "user", "content": "2+2"}])


def test_build_backend_selects_provider():
    openai_backend = build_backend(make_settings())
    assert isinstance(openai_backend, OpenAIBackend)
    assert openai_backend.client.max_retries == 0

    ollama_backend = build_backend(make_settings(provider="ollama", base_url="http://localhost:11434"))
    assert isinstance(ollama_backend, OllamaBackend)


@pytest.mark.parametrize(
    "error, expected",
    [
        (
            openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
            CompletionRateLimitError,
        ),
        (
            openai.AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None),
            CompletionAuthError,
        ),
        (
            openai.NotFoundError("no such model", response=httpx.Response(404, request=REQUEST), body=None),
            CompletionNotFoundError,
        ),
        (openai.APITimeoutError(request=REQUEST), CompletionConnectionError),
        (ValueError("something odd"), CompletionError),
    ],
)
def test_to_completion_error(error, expected):
    wrapped = to_completion_error(error)

    assert type(wrapped) is expected
    assert str(error) in str(wrapped)


def test_to_completion_error_passes_completion_errors_through():
    error = EmptyCompletionError("none")
    assert to_completion_error(error) is error


def test_parse_error_message():
    assert parse_error_message(CompletionRateLimitError("x")).startswith("Rate Limited")
    assert parse_error_message(EmptyCompletionError("x")).startswith("Empty Response")

    wrapped = CompletionError("failed")
    wrapped.__cause__ = KeyError("choices")
    assert parse_error_message(wrapped) == "KeyError: 'choices'"


def test_empty_api_key_is_deferred_to_first_request(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    client = build_openai_client(make_settings(openai_api_key=""))

    assert client.api_key == "sk-no-key-required"
    assert client.max_retries == 0
