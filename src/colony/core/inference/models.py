"""Inference data models — requests, responses, engine state, and metrics."""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class InferenceRequest(BaseModel):
    """A single generation request.

    The cache key is derived from ``prompt``, ``max_tokens``, ``temperature``,
    ``top_k`` and ``top_p`` only; ``stop`` and ``stream`` do not participate.
    ``stream`` asks the backend to build the response from a streamed
    completion.
    """

    prompt: str
    max_tokens: int = Field(default=256, ge=1)
    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    stop: list[str] = []
    stream: bool = False


class InferenceTimings(BaseModel):
    prompt_eval_time: float = 0.0
    generation_time: float = 0.0
    total_time: float = 0.0
    tokens_per_second: float = 0.0


class InferenceResponse(BaseModel):
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: Literal["stop", "length", "error"] = "stop"
    timings: InferenceTimings = Field(default_factory=InferenceTimings)
    engine_id: str | None = None
    cached: bool = False

    @property
    def tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class EngineState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PROCESSING = "processing"
    ERROR = "error"


class EngineStatus(BaseModel):
    """Live status of one generation engine."""

    id: str
    model_name: str
    status: EngineState = EngineState.IDLE
    current_job: str | None = None
    processed_jobs: int = 0
    average_latency: float = 0.0
    last_active: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LoadBalancingPolicy(str, Enum):
    ROUND_ROBIN = "round_robin"
    LEAST_LOADED = "least_loaded"
    PRIORITY = "priority"


class CoordinatorConfig(BaseModel):
    """Configuration for :class:`~colony.core.inference.coordinator.InferenceCoordinator`."""

    max_engines: int = Field(default=3, ge=1)
    load_balancing: LoadBalancingPolicy = LoadBalancingPolicy.LEAST_LOADED
    enable_caching: bool = True
    cache_size: int = Field(default=1000, ge=1)
    cache_ttl: float = Field(default=300.0, gt=0, description="Cache entry lifetime in seconds.")
    poll_interval: float = Field(default=0.01, gt=0, description="Seconds between idle-engine polls.")
    shutdown_timeout: float = Field(default=30.0, ge=0)


class CoordinatorMetrics(BaseModel):
    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    average_latency: float = 0.0
    tokens_per_second: float = 0.0


class CoordinatorStatus(BaseModel):
    is_running: bool
    engine_count: int
    queue_length: int
    engines: list[EngineStatus] = []
    metrics: CoordinatorMetrics = Field(default_factory=CoordinatorMetrics)
