"""Delegation models — hierarchy trees, load information, rebalance reports."""

from __future__ import annotations

from pydantic import BaseModel

from colony.core.agents.models import AgentRole, AgentStatus


class HierarchyNode(BaseModel):
    agent_id: str
    role: AgentRole
    status: AgentStatus
    children: list[HierarchyNode] = []

    @property
    def depth(self) -> int:
        """Nodes on the longest path from this node down to a leaf."""
        return 1 + max((child.depth for child in self.children), default=0)


class HierarchyTree(BaseModel):
    roots: list[HierarchyNode] = []
    total_agents: int = 0

    @property
    def depth(self) -> int:
        return max((root.depth for root in self.roots), default=0)


class LoadInfo(BaseModel):
    agent_id: str
    status: AgentStatus
    current_task_count: int = 0
    subordinate_count: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0


class RebalanceReport(BaseModel):
    """Outcome of an advisory rebalance.  Nothing is migrated."""

    mean_load: float = 0.0
    overloaded: list[str] = []
    underloaded: list[str] = []
    instructions_sent: int = 0
