"""Engine selection policies.

Each policy picks one *idle* engine from the status map, iterated in
registration order, or returns ``None`` when every engine is busy.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from colony.core.inference.models import EngineState, EngineStatus, LoadBalancingPolicy


def _idle(engines: Iterable[EngineStatus]) -> list[EngineStatus]:
    return [e for e in engines if e.status == EngineState.IDLE]


def round_robin(engines: Iterable[EngineStatus]) -> EngineStatus | None:
    """First idle engine in registration order."""
    idle = _idle(engines)
    return idle[0] if idle else None


def least_loaded(engines: Iterable[EngineStatus]) -> EngineStatus | None:
    """Idle engine with the fewest processed jobs."""
    idle = _idle(engines)
    return min(idle, key=lambda e: e.processed_jobs) if idle else None


def lowest_latency(engines: Iterable[EngineStatus]) -> EngineStatus | None:
    """Idle engine with the lowest rolling average latency."""
    idle = _idle(engines)
    return min(idle, key=lambda e: e.average_latency) if idle else None


_POLICIES: dict[LoadBalancingPolicy, Callable[[Iterable[EngineStatus]], EngineStatus | None]] = {
    LoadBalancingPolicy.ROUND_ROBIN: round_robin,
    LoadBalancingPolicy.LEAST_LOADED: least_loaded,
    LoadBalancingPolicy.PRIORITY: lowest_latency,
}


def select_engine(policy: LoadBalancingPolicy, engines: Iterable[EngineStatus]) -> EngineStatus | None:
    return _POLICIES[policy](engines)
