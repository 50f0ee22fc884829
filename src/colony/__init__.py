"""Colony — agent task scheduling, inference load balancing, and associative memory."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from colony.runtime.context import Colony as Colony
    from colony.runtime.context import ColonyConfig as ColonyConfig
    from colony.sdk.workload import WorkloadLoader as WorkloadLoader
    from colony.sdk.workload import WorkloadRunner as WorkloadRunner

_LAZY_EXPORTS = {
    "Colony": "colony.runtime.context",
    "ColonyConfig": "colony.runtime.context",
    "WorkloadRunner": "colony.sdk.workload",
    "WorkloadLoader": "colony.sdk.workload",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'colony' has no attribute {name!r}")
