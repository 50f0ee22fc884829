"""Hierarchical delegation — subordinate agents and advisory rebalancing."""

from colony.core.delegation.manager import COORDINATOR_ID, DelegationManager
from colony.core.delegation.models import HierarchyNode, HierarchyTree, LoadInfo, RebalanceReport

__all__ = [
    "COORDINATOR_ID",
    "DelegationManager",
    "HierarchyNode",
    "HierarchyTree",
    "LoadInfo",
    "RebalanceReport",
]
