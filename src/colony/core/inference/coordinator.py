"""InferenceCoordinator — dispatches generation jobs across a pool of engines.

Each engine wraps one :class:`~colony.core.inference.backend.GenerationBackend`
and services at most one job at a time.  A job is executed immediately when
the load-balancing policy finds an idle engine; otherwise it waits in a
priority queue (higher priority first, FIFO among equals) and is dispatched
as soon as an engine is released.  Responses are cached by request.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from colony.core.inference.backend import EchoBackend, GenerationBackend
from colony.core.inference.balancer import select_engine
from colony.core.inference.cache import ResponseCache, cache_key
from colony.core.inference.models import (
    CoordinatorConfig,
    CoordinatorMetrics,
    CoordinatorStatus,
    EngineState,
    EngineStatus,
    InferenceRequest,
    InferenceResponse,
)
from colony.runtime.errors import CapacityError, ExecutionError, ShutdownTimeoutError, ValidationError
from colony.runtime.reporting import ErrorCategory, ErrorSeverity
from colony.utils.telemetry import (
    ATTR_CACHE_HIT,
    ATTR_ENGINE_ID,
    ATTR_FINISH_REASON,
    ATTR_JOB_ID,
    ATTR_TASK_PRIORITY,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    get_tracer,
)

if TYPE_CHECKING:
    from colony.core.memory.persistence import PersistenceStore
    from colony.runtime.reporting import ErrorSink

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_CACHE_KEY = "inference_cache"


@dataclass
class InferenceJob:
    """A queued generation request and the future its caller awaits."""

    request: InferenceRequest
    priority: int
    future: asyncio.Future[InferenceResponse]
    id: str = field(default_factory=lambda: f"job_{uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InferenceCoordinator:
    """Load-balances generation jobs across engines.

    Usage::

        coordinator = InferenceCoordinator(CoordinatorConfig(max_engines=2))
        await coordinator.initialize("openai/gpt-4o-mini", engine_count=2)
        response = await coordinator.submit(InferenceRequest(prompt="hi"))
        await coordinator.shutdown()

    Parameters
    ----------
    config:
        Engine count cap, balancing policy, cache and shutdown settings.
    backend_factory:
        Called once per engine to build its backend.  Defaults to
        :class:`EchoBackend`.
    error_sink:
        Receives a report for every failed job.
    """

    def __init__(
        self,
        config: CoordinatorConfig | None = None,
        backend_factory: Callable[[], GenerationBackend] | None = None,
        *,
        error_sink: ErrorSink | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.config = config or CoordinatorConfig()
        self._backend_factory = backend_factory or EchoBackend
        self._error_sink = error_sink
        if cache is None:
            cache = ResponseCache(self.config.cache_size, self.config.cache_ttl)
        self.cache = cache

        self._engines: dict[str, GenerationBackend] = {}
        self._status: dict[str, EngineStatus] = {}
        self._queue: list[tuple[int, int, InferenceJob]] = []
        self._seq = itertools.count()
        self._dispatched: set[asyncio.Task[None]] = set()
        self._running = False
        self._metrics = CoordinatorMetrics()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def engines(self) -> dict[str, GenerationBackend]:
        return dict(self._engines)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, model_path: str, engine_count: int = 3) -> None:
        """Create ``min(engine_count, max_engines)`` engines and load the model."""
        if self._running:
            raise ValidationError("coordinator is already initialized")
        if engine_count < 1:
            raise ValidationError("engine_count must be at least 1", field="engine_count")

        count = min(engine_count, self.config.max_engines)
        for i in range(count):
            engine_id = f"engine_{i}"
            status = EngineStatus(id=engine_id, model_name=model_path, status=EngineState.LOADING)
            self._status[engine_id] = status

            backend = self._backend_factory()
            await backend.load(model_path)
            self._engines[engine_id] = backend
            status.status = EngineState.IDLE

        self._running = True
        logger.info("Initialized %d inference engine(s) for %s", count, model_path)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop accepting work, wait for in-flight jobs, then release engines.

        Jobs still queued when the wait ends are rejected with
        :class:`CapacityError`.  Engines are released even when the wait
        times out, after which :class:`ShutdownTimeoutError` is raised.
        """
        timeout = self.config.shutdown_timeout if timeout is None else timeout
        self._running = False

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        timed_out = False
        while self._busy_count() or self._queue:
            if loop.time() >= deadline:
                timed_out = True
                break
            await asyncio.sleep(self.config.poll_interval)

        while self._queue:
            _, _, job = heapq.heappop(self._queue)
            if not job.future.done():
                job.future.set_exception(CapacityError("inference engine", "coordinator shut down"))

        for engine_id, backend in self._engines.items():
            try:
                await backend.unload()
            except Exception:
                logger.warning("Failed to unload engine %s", engine_id, exc_info=True)

        self._engines.clear()
        self._status.clear()
        logger.info("Inference coordinator shut down")

        if timed_out:
            raise ShutdownTimeoutError("inference coordinator", timeout)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, request: InferenceRequest, priority: int = 5) -> InferenceResponse:
        """Generate a response, from cache when possible."""
        if not self._running:
            raise CapacityError("inference engine", "coordinator is not running")

        if self.config.enable_caching:
            cached = self.cache.get(cache_key(request))
            if cached is not None:
                self._metrics.cache_hits += 1
                return cached.model_copy(update={"cached": True})
            self._metrics.cache_misses += 1

        loop = asyncio.get_running_loop()
        job = InferenceJob(request=request, priority=priority, future=loop.create_future())
        self._metrics.total_jobs += 1

        engine = select_engine(self.config.load_balancing, self._status.values())
        if engine is not None:
            self._claim(engine.id, job.id)
            return await self._execute(job, engine.id)

        heapq.heappush(self._queue, (-priority, next(self._seq), job))
        logger.debug("Queued job %s (priority=%d, queue=%d)", job.id, priority, len(self._queue))
        return await job.future

    async def submit_batch(
        self, requests: list[InferenceRequest], priority: int = 5
    ) -> list[InferenceResponse]:
        """Submit all *requests* concurrently; results keep the input order."""
        return list(await asyncio.gather(*(self.submit(r, priority) for r in requests)))

    async def stream(self, request: InferenceRequest) -> AsyncIterator[str]:
        """Yield tokens from the first engine to become idle.

        The engine is returned to idle when the stream finishes, fails, or is
        closed early by the consumer.
        """
        if not self._running:
            raise CapacityError("inference engine", "coordinator is not running")

        engine_id = await self._wait_for_engine()
        self._claim(engine_id, f"stream_{uuid4().hex[:12]}")
        with _tracer.start_as_current_span("inference.stream") as span:
            span.set_attribute(ATTR_ENGINE_ID, engine_id)
            try:
                async for token in self._engines[engine_id].stream(request):
                    yield token
            finally:
                self._release(engine_id)

    # ------------------------------------------------------------------
    # Status & persistence
    # ------------------------------------------------------------------

    def get_status(self) -> CoordinatorStatus:
        return CoordinatorStatus(
            is_running=self._running,
            engine_count=len(self._engines),
            queue_length=len(self._queue),
            engines=[s.model_copy() for s in self._status.values()],
            metrics=self.get_metrics(),
        )

    def get_metrics(self) -> CoordinatorMetrics:
        return self._metrics.model_copy()

    async def persist_cache(self, persistence: PersistenceStore, key: str = DEFAULT_CACHE_KEY) -> None:
        await persistence.save(key, self.cache.export())

    async def restore_cache(self, persistence: PersistenceStore, key: str = DEFAULT_CACHE_KEY) -> int:
        data = await persistence.load(key)
        if data is None:
            return len(self.cache)
        return self.cache.load(data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute(self, job: InferenceJob, engine_id: str) -> InferenceResponse:
        backend = self._engines[engine_id]
        with _tracer.start_as_current_span("inference.execute") as span:
            span.set_attribute(ATTR_JOB_ID, job.id)
            span.set_attribute(ATTR_ENGINE_ID, engine_id)
            span.set_attribute(ATTR_TASK_PRIORITY, job.priority)
            span.set_attribute(ATTR_CACHE_HIT, False)

            start = time.perf_counter()
            try:
                response = await backend.generate(job.request)
            except Exception as exc:
                self._metrics.failed_jobs += 1
                if self._error_sink is not None:
                    self._error_sink.report(
                        exc,
                        ErrorCategory.INFERENCE,
                        ErrorSeverity.MEDIUM,
                        {"job_id": job.id, "engine_id": engine_id},
                    )
                raise ExecutionError(f"inference job {job.id}", str(exc)) from exc
            finally:
                self._release(engine_id)

            latency = time.perf_counter() - start
            self._record_success(engine_id, latency, response)

            span.set_attribute(ATTR_TOKENS_PROMPT, response.prompt_tokens)
            span.set_attribute(ATTR_TOKENS_COMPLETION, response.completion_tokens)
            span.set_attribute(ATTR_FINISH_REASON, response.finish_reason)

        response = response.model_copy(update={"engine_id": engine_id})
        if self.config.enable_caching:
            self.cache.put(cache_key(job.request), response)
        return response

    async def _run_queued(self, job: InferenceJob, engine_id: str) -> None:
        try:
            response = await self._execute(job, engine_id)
        except ExecutionError as exc:
            if not job.future.done():
                job.future.set_exception(exc)
            return
        if not job.future.done():
            job.future.set_result(response)

    def _record_success(self, engine_id: str, latency: float, response: InferenceResponse) -> None:
        m = self._metrics
        m.completed_jobs += 1
        m.average_latency += (latency - m.average_latency) / m.completed_jobs
        m.tokens_per_second += (response.timings.tokens_per_second - m.tokens_per_second) / m.completed_jobs

        status = self._status.get(engine_id)
        if status is not None:
            status.processed_jobs += 1
            status.average_latency += (latency - status.average_latency) / status.processed_jobs

    def _claim(self, engine_id: str, job_id: str) -> None:
        status = self._status[engine_id]
        status.status = EngineState.PROCESSING
        status.current_job = job_id
        status.last_active = datetime.now(UTC)

    def _release(self, engine_id: str) -> None:
        status = self._status.get(engine_id)
        if status is None:
            return
        status.status = EngineState.IDLE
        status.current_job = None
        status.last_active = datetime.now(UTC)
        self._drain_queue()

    def _drain_queue(self) -> None:
        """Hand queued jobs to idle engines, highest priority first."""
        while self._queue:
            engine = select_engine(self.config.load_balancing, self._status.values())
            if engine is None:
                return
            _, _, job = heapq.heappop(self._queue)
            if job.future.done():
                continue
            self._claim(engine.id, job.id)
            task = asyncio.create_task(self._run_queued(job, engine.id))
            self._dispatched.add(task)
            task.add_done_callback(self._dispatched.discard)

    async def _wait_for_engine(self) -> str:
        while True:
            engine = select_engine(self.config.load_balancing, self._status.values())
            if engine is not None:
                return engine.id
            if not self._running:
                raise CapacityError("inference engine", "coordinator shut down")
            await asyncio.sleep(self.config.poll_interval)

    def _busy_count(self) -> int:
        return sum(1 for s in self._status.values() if s.status == EngineState.PROCESSING)
