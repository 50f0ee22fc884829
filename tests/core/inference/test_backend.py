"""Tests for generation backends."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from colony.core.inference.backend import EchoBackend, GenerationBackend, LiteLLMBackend
from colony.core.inference.models import InferenceRequest


class TestEchoBackend:
    def setup_method(self) -> None:
        self.backend = EchoBackend()

    def test_satisfies_protocol(self) -> None:
        assert isinstance(self.backend, GenerationBackend)

    async def test_load_unload(self) -> None:
        await self.backend.load("local/model")
        assert self.backend.model_path == "local/model"
        await self.backend.unload()
        assert self.backend.model_path is None

    async def test_generate_echoes_prompt(self) -> None:
        response = await self.backend.generate(InferenceRequest(prompt="hello there world"))
        assert response.text == "hello there world"
        assert response.prompt_tokens == 3
        assert response.completion_tokens == 3
        assert response.finish_reason == "stop"
        assert response.tokens == 6
        assert len(self.backend.requests) == 1

    async def test_generate_truncates(self) -> None:
        response = await self.backend.generate(InferenceRequest(prompt="a b c d", max_tokens=2))
        assert response.text == "a b"
        assert response.finish_reason == "length"

    async def test_stream(self) -> None:
        tokens = [t async for t in self.backend.stream(InferenceRequest(prompt="one two three"))]
        assert tokens == ["one", "two", "three"]

    def test_tokenize_is_deterministic(self) -> None:
        assert self.backend.tokenize("a b") == EchoBackend().tokenize("a b")


def _completion(text: str, finish_reason: str = "stop") -> MagicMock:
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = text
    choice.finish_reason = finish_reason
    response.choices = [choice]
    response.usage.prompt_tokens = 7
    response.usage.completion_tokens = 3
    return response


class TestLiteLLMBackend:
    async def test_generate_requires_load(self) -> None:
        with pytest.raises(RuntimeError, match="load"):
            await LiteLLMBackend().generate(InferenceRequest(prompt="hi"))

    async def test_generate(self) -> None:
        backend = LiteLLMBackend(api_key="key")
        backend.model = "openai/gpt-4o-mini"
        with patch("litellm.acompletion", new=AsyncMock(return_value=_completion("hello", "length"))) as mock:
            response = await backend.generate(
                InferenceRequest(prompt="hi", max_tokens=5, temperature=0.1, stop=["\n"])
            )

        assert response.text == "hello"
        assert response.prompt_tokens == 7
        assert response.completion_tokens == 3
        assert response.finish_reason == "length"
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
        assert kwargs["max_tokens"] == 5
        assert kwargs["temperature"] == 0.1
        assert kwargs["stop"] == ["\n"]
        assert kwargs["api_key"] == "key"

    async def test_stream(self) -> None:
        backend = LiteLLMBackend()
        backend.model = "openai/gpt-4o-mini"

        def _chunk(text: str | None) -> MagicMock:
            chunk = MagicMock()
            chunk.choices[0].delta.content = text
            return chunk

        async def _chunks():  # type: ignore[no-untyped-def]
            for text in ("Hel", None, "lo"):
                yield _chunk(text)

        with patch("litellm.acompletion", new=AsyncMock(return_value=_chunks())) as mock:
            tokens = [t async for t in backend.stream(InferenceRequest(prompt="hi"))]

        assert tokens == ["Hel", "lo"]
        assert mock.call_args.kwargs["stream"] is True

    async def test_generate_forwards_top_k(self) -> None:
        backend = LiteLLMBackend()
        backend.model = "openai/gpt-4o-mini"
        with patch("litellm.acompletion", new=AsyncMock(return_value=_completion("ok"))) as mock:
            await backend.generate(InferenceRequest(prompt="hi", top_k=40, top_p=0.9))

        kwargs = mock.call_args.kwargs
        assert kwargs["top_k"] == 40
        assert kwargs["top_p"] == 0.9

    async def test_generate_streamed_request(self) -> None:
        backend = LiteLLMBackend()
        backend.model = "openai/gpt-4o-mini"

        async def _chunks():  # type: ignore[no-untyped-def]
            for text in ("one ", "two"):
                chunk = MagicMock()
                chunk.choices[0].delta.content = text
                yield chunk

        with (
            patch("litellm.acompletion", new=AsyncMock(return_value=_chunks())) as mock,
            patch.object(backend, "tokenize", side_effect=lambda text: text.split()),
        ):
            response = await backend.generate(InferenceRequest(prompt="count to two", stream=True))

        assert response.text == "one two"
        assert response.prompt_tokens == 3
        assert response.completion_tokens == 2
        assert mock.call_args.kwargs["stream"] is True
