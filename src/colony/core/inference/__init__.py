"""Inference coordination — load-balanced generation across an engine pool."""

from colony.core.inference.backend import EchoBackend, GenerationBackend, LiteLLMBackend
from colony.core.inference.balancer import least_loaded, lowest_latency, round_robin, select_engine
from colony.core.inference.cache import CacheEntry, ResponseCache, cache_key
from colony.core.inference.coordinator import InferenceCoordinator, InferenceJob
from colony.core.inference.models import (
    CoordinatorConfig,
    CoordinatorMetrics,
    CoordinatorStatus,
    EngineState,
    EngineStatus,
    InferenceRequest,
    InferenceResponse,
    InferenceTimings,
    LoadBalancingPolicy,
)

__all__ = [
    "CacheEntry",
    "CoordinatorConfig",
    "CoordinatorMetrics",
    "CoordinatorStatus",
    "EchoBackend",
    "EngineState",
    "EngineStatus",
    "GenerationBackend",
    "InferenceCoordinator",
    "InferenceJob",
    "InferenceRequest",
    "InferenceResponse",
    "InferenceTimings",
    "LiteLLMBackend",
    "LoadBalancingPolicy",
    "ResponseCache",
    "cache_key",
    "least_loaded",
    "lowest_latency",
    "round_robin",
    "select_engine",
]
