"""Generation backends — the per-engine model runtime.

:class:`GenerationBackend` is the protocol each engine wraps.
:class:`EchoBackend` is a deterministic, dependency-free double for tests
and dry runs; :class:`LiteLLMBackend` sends requests to a real model via
LiteLLM and counts tokens with tiktoken.
"""

from __future__ import annotations

import asyncio
import time
import zlib
from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

import litellm
import tiktoken

from colony.core.inference.models import InferenceRequest, InferenceResponse, InferenceTimings

_VOCAB_SIZE = 32000


@runtime_checkable
class GenerationBackend(Protocol):
    """Protocol for a single loaded model instance."""

    async def load(self, model_path: str) -> None:
        """Load the model; called once before any generation."""
        ...

    def tokenize(self, text: str) -> list[int]:
        """Return token ids for *text*."""
        ...

    async def generate(self, request: InferenceRequest) -> InferenceResponse:
        """Run a full generation and return the response."""
        ...

    def stream(self, request: InferenceRequest) -> AsyncIterator[str]:
        """Yield generated tokens one at a time."""
        ...

    async def unload(self) -> None:
        """Release the model."""
        ...


# ---------------------------------------------------------------------------
# Echo backend (deterministic test double)
# ---------------------------------------------------------------------------


class EchoBackend:
    """Echoes the prompt's words back, truncated to ``max_tokens``.

    *delay* is awaited once per generation (and once per streamed token) so
    tests can hold an engine busy.  Every request is recorded in
    :attr:`requests`.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.model_path: str | None = None
        self.requests: list[InferenceRequest] = []

    async def load(self, model_path: str) -> None:
        self.model_path = model_path

    def tokenize(self, text: str) -> list[int]:
        return [zlib.crc32(word.encode("utf-8")) % _VOCAB_SIZE for word in text.split()]

    async def generate(self, request: InferenceRequest) -> InferenceResponse:
        self.requests.append(request)
        start = time.perf_counter()
        if self.delay:
            await asyncio.sleep(self.delay)

        words = request.prompt.split()[: request.max_tokens]
        elapsed = time.perf_counter() - start
        return InferenceResponse(
            text=" ".join(words),
            prompt_tokens=len(self.tokenize(request.prompt)),
            completion_tokens=len(words),
            finish_reason="length" if len(words) >= request.max_tokens else "stop",
            timings=InferenceTimings(
                generation_time=elapsed,
                total_time=elapsed,
                tokens_per_second=len(words) / elapsed if elapsed > 0 else 0.0,
            ),
        )

    async def stream(self, request: InferenceRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        for word in request.prompt.split()[: request.max_tokens]:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield word

    async def unload(self) -> None:
        self.model_path = None


# ---------------------------------------------------------------------------
# LiteLLM backend
# ---------------------------------------------------------------------------


class LiteLLMBackend:
    """Backend that forwards each request to ``litellm.acompletion``.

    The *model_path* passed to :meth:`load` is the LiteLLM model string,
    e.g. ``"openai/gpt-4o-mini"``.

    Usage::

        backend = LiteLLMBackend(api_key="...")
        await backend.load("openai/gpt-4o-mini")
        response = await backend.generate(InferenceRequest(prompt="hi"))
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None) -> None:
        self.api_key = api_key
        self.api_base = api_base
        self.model: str | None = None
        self._enc: tiktoken.Encoding | None = None

    async def load(self, model_path: str) -> None:
        self.model = model_path
        try:
            self._enc = tiktoken.encoding_for_model(model_path.split("/")[-1])
        except KeyError:
            self._enc = tiktoken.get_encoding("cl100k_base")

    def tokenize(self, text: str) -> list[int]:
        if self._enc is None:
            self._enc = tiktoken.get_encoding("cl100k_base")
        return self._enc.encode(text)

    async def generate(self, request: InferenceRequest) -> InferenceResponse:
        if request.stream:
            return await self._generate_streamed(request)

        start = time.perf_counter()
        response = await litellm.acompletion(**self._call_kwargs(request))  # pyright: ignore[reportUnknownMemberType]
        elapsed = time.perf_counter() - start

        choice = response.choices[0]
        text = choice.message.content or ""

        prompt_tokens = 0
        completion_tokens = 0
        if getattr(response, "usage", None):
            prompt_tokens = int(response.usage.prompt_tokens or 0)
            completion_tokens = int(response.usage.completion_tokens or 0)
        else:
            prompt_tokens = len(self.tokenize(request.prompt))
            completion_tokens = len(self.tokenize(text))

        return InferenceResponse(
            text=text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            finish_reason="length" if choice.finish_reason == "length" else "stop",
            timings=InferenceTimings(
                generation_time=elapsed,
                total_time=elapsed,
                tokens_per_second=completion_tokens / elapsed if elapsed > 0 else 0.0,
            ),
        )

    async def stream(self, request: InferenceRequest) -> AsyncIterator[str]:
        response = await litellm.acompletion(**self._call_kwargs(request), stream=True)  # pyright: ignore[reportUnknownMemberType]
        async for chunk in response:  # pyright: ignore[reportUnknownVariableType]
            delta = chunk.choices[0].delta.content  # pyright: ignore[reportUnknownMemberType]
            if delta:
                yield delta

    async def _generate_streamed(self, request: InferenceRequest) -> InferenceResponse:
        start = time.perf_counter()
        text = "".join([token async for token in self.stream(request)])
        elapsed = time.perf_counter() - start

        completion_tokens = len(self.tokenize(text))
        return InferenceResponse(
            text=text,
            prompt_tokens=len(self.tokenize(request.prompt)),
            completion_tokens=completion_tokens,
            timings=InferenceTimings(
                generation_time=elapsed,
                total_time=elapsed,
                tokens_per_second=completion_tokens / elapsed if elapsed > 0 else 0.0,
            ),
        )

    async def unload(self) -> None:
        self.model = None

    def _call_kwargs(self, request: InferenceRequest) -> dict[str, Any]:
        if self.model is None:
            msg = "LiteLLMBackend.load() must be called before generating"
            raise RuntimeError(msg)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_tokens,
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.top_k is not None:
            kwargs["top_k"] = request.top_k
        if request.top_p is not None:
            kwargs["top_p"] = request.top_p
        if request.stop:
            kwargs["stop"] = request.stop
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return kwargs
