"""Tests for engine selection policies."""

from colony.core.inference.balancer import least_loaded, lowest_latency, round_robin, select_engine
from colony.core.inference.models import EngineState, EngineStatus, LoadBalancingPolicy


def _engine(i: int, *, busy: bool = False, jobs: int = 0, latency: float = 0.0) -> EngineStatus:
    return EngineStatus(
        id=f"engine_{i}",
        model_name="m",
        status=EngineState.PROCESSING if busy else EngineState.IDLE,
        processed_jobs=jobs,
        average_latency=latency,
    )


class TestPolicies:
    def test_round_robin_first_idle(self) -> None:
        engines = [_engine(0, busy=True), _engine(1), _engine(2)]
        selected = round_robin(engines)
        assert selected is not None
        assert selected.id == "engine_1"

    def test_least_loaded(self) -> None:
        engines = [_engine(0, jobs=5), _engine(1, jobs=2), _engine(2, jobs=2)]
        selected = least_loaded(engines)
        assert selected is not None
        assert selected.id == "engine_1"

    def test_least_loaded_ignores_busy(self) -> None:
        engines = [_engine(0, busy=True), _engine(1, jobs=9)]
        selected = least_loaded(engines)
        assert selected is not None
        assert selected.id == "engine_1"

    def test_lowest_latency(self) -> None:
        engines = [_engine(0, latency=0.5), _engine(1, latency=0.1)]
        selected = lowest_latency(engines)
        assert selected is not None
        assert selected.id == "engine_1"

    def test_all_busy(self) -> None:
        engines = [_engine(0, busy=True), _engine(1, busy=True)]
        for policy in LoadBalancingPolicy:
            assert select_engine(policy, engines) is None

    def test_loading_engine_not_selected(self) -> None:
        loading = EngineStatus(id="engine_0", model_name="m", status=EngineState.LOADING)
        assert select_engine(LoadBalancingPolicy.ROUND_ROBIN, [loading]) is None

    def test_select_engine_dispatches_policy(self) -> None:
        engines = [_engine(0, jobs=3, latency=0.1), _engine(1, jobs=1, latency=0.9)]
        priority = select_engine(LoadBalancingPolicy.PRIORITY, engines)
        loaded = select_engine(LoadBalancingPolicy.LEAST_LOADED, engines)
        assert priority is not None and priority.id == "engine_0"
        assert loaded is not None and loaded.id == "engine_1"
