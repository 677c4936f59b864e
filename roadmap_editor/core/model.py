from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional, Union


NodeType = Literal["milestone", "workstream"]
ActivityStatus = Literal["not_started", "in_progress", "completed"]

NodeId = Union[int, str]

ALLOWED_NODE_TYPES: set[str] = {"milestone", "workstream"}
ALLOWED_PRIORITIES: set[int] = {1, 2, 3}


@dataclass(frozen=True)
class NodeRef:
    node_type: NodeType
    node_id: NodeId


@dataclass(frozen=True)
class NodePosition:
    node_type: NodeType
    node_id: NodeId
    rel_y: float
    is_duplicate: bool = False
    duplicate_key: Optional[str] = None
    original_node_id: Optional[int] = None

    @property
    def storage_key(self) -> str:
        """Key the position is stored under: the duplicate key for duplicates."""
        if self.is_duplicate and self.duplicate_key:
            return self.duplicate_key
        return str(self.node_id)


@dataclass(frozen=True)
class Activity:
    id: int
    name: str = ""
    status: ActivityStatus = "not_started"
    priority: int = 2
    target_start_date: Optional[date] = None
    target_end_date: Optional[date] = None
    source_milestone: Optional[int] = None
    target_milestone: Optional[int] = None
    supported_milestones: list[int] = field(default_factory=list)
    additional_milestones: list[int] = field(default_factory=list)
    prerequisite_activities: list[int] = field(default_factory=list)
    parallel_activities: list[int] = field(default_factory=list)
    successive_activities: list[int] = field(default_factory=list)

    def related_ids(self) -> list[int]:
        """All ids across the three relation lists, in list order."""
        return (
            list(self.prerequisite_activities)
            + list(self.parallel_activities)
            + list(self.successive_activities)
        )


@dataclass(frozen=True)
class Milestone:
    id: int
    name: str = ""
    status: str = "not_started"
    deadline: Optional[date] = None
    workstream: Optional[int] = None
    dependencies: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class Workstream:
    id: int
    name: str = ""
    program: Optional[int] = None


@dataclass(frozen=True)
class MilestoneDependency:
    source_id: int
    target_id: int


@dataclass(frozen=True)
class ValidationReport:
    errors: list[str]
    warnings: list[str]
    insights: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class RoadmapIndex:
    strategy_id: Optional[int]
    activities_by_id: dict[int, Activity]
    milestones_by_id: dict[int, Milestone]
    workstreams_by_id: dict[int, Workstream]

    def milestone_workstreams(self) -> dict[int, Optional[int]]:
        return {mid: m.workstream for mid, m in self.milestones_by_id.items()}
