from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union


class EditMode(str, Enum):
    IDLE = "none"
    MILESTONE_EDITOR = "milestone-editor"
    DEPENDENCY_CREATOR = "dependency-creator"
    ACTIVITY_BUILDER = "activity-builder"
    TIMELINE_ADJUSTER = "timeline-adjuster"
    MILESTONE_CREATOR = "milestone-creator"


PAIR_MODES = (EditMode.DEPENDENCY_CREATOR, EditMode.ACTIVITY_BUILDER)


@dataclass(frozen=True)
class MilestonePlacement:
    workstream_id: int
    x: float
    y: float

    @property
    def position(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class IdleState:
    mode = EditMode.IDLE

    @property
    def selected_nodes(self) -> list[str]:
        return []

    @property
    def step(self) -> int:
        return 0


@dataclass(frozen=True)
class MilestoneEditorState:
    selected: Optional[str] = None
    node_data: Any = None
    mode = EditMode.MILESTONE_EDITOR

    @property
    def selected_nodes(self) -> list[str]:
        return [self.selected] if self.selected is not None else []

    @property
    def step(self) -> int:
        return 1 if self.selected is not None else 0


@dataclass(frozen=True)
class PairSelectionState:
    """Two-slot selection used by the dependency creator and activity builder."""

    mode: EditMode
    first: Optional[str] = None
    second: Optional[str] = None
    node_data: Any = None

    @property
    def selected_nodes(self) -> list[str]:
        return [n for n in (self.first, self.second) if n is not None]

    @property
    def step(self) -> int:
        return len(self.selected_nodes)

    @property
    def complete(self) -> bool:
        return self.first is not None and self.second is not None


@dataclass(frozen=True)
class TimelineAdjusterState:
    selected: tuple[str, ...] = ()
    mode = EditMode.TIMELINE_ADJUSTER

    @property
    def selected_nodes(self) -> list[str]:
        return list(self.selected)

    @property
    def step(self) -> int:
        return 1 if self.selected else 0


@dataclass(frozen=True)
class MilestoneCreatorState:
    placement: Optional[MilestonePlacement] = None
    mode = EditMode.MILESTONE_CREATOR

    @property
    def selected_nodes(self) -> list[str]:
        return []

    @property
    def step(self) -> int:
        return 1 if self.placement is not None else 0


EditState = Union[
    IdleState,
    MilestoneEditorState,
    PairSelectionState,
    TimelineAdjusterState,
    MilestoneCreatorState,
]


def initial_state(mode: EditMode) -> EditState:
    if mode == EditMode.IDLE:
        return IdleState()
    if mode == EditMode.MILESTONE_EDITOR:
        return MilestoneEditorState()
    if mode in PAIR_MODES:
        return PairSelectionState(mode=mode)
    if mode == EditMode.TIMELINE_ADJUSTER:
        return TimelineAdjusterState()
    if mode == EditMode.MILESTONE_CREATOR:
        return MilestoneCreatorState()
    raise ValueError(f"unknown edit mode: {mode!r}")


def cleared(state: EditState) -> EditState:
    """Same mode, nothing selected."""
    return initial_state(state.mode)


def select(state: EditState, node_id: str, node_data: Any = None) -> EditState:
    """Apply one node click to a state, returning the next state.

    ``node_id`` must already be canonical (duplicates collapsed).
    """

    if isinstance(state, PairSelectionState):
        if state.complete:
            # Third click: drop the pair and start over from this node.
            return replace(state, first=node_id, second=None, node_data=node_data)
        if state.first is None:
            return replace(state, first=node_id, node_data=node_data)
        if state.first == node_id:
            # Clicking the pending source again cancels it.
            return replace(state, first=None, node_data=None)
        return replace(state, second=node_id)

    if isinstance(state, MilestoneEditorState):
        return MilestoneEditorState(selected=node_id, node_data=node_data)

    if isinstance(state, TimelineAdjusterState):
        if node_id in state.selected:
            return TimelineAdjusterState(selected=tuple(n for n in state.selected if n != node_id))
        return TimelineAdjusterState(selected=state.selected + (node_id,))

    # Idle and milestone creator ignore node clicks.
    return state


def with_temp_data(state: EditState, data: Any) -> EditState:
    if isinstance(state, MilestoneCreatorState):
        return MilestoneCreatorState(placement=coerce_placement(data))
    if isinstance(state, (PairSelectionState, MilestoneEditorState)):
        return replace(state, node_data=data)
    return state


def coerce_placement(data: Any) -> Optional[MilestonePlacement]:
    if data is None or isinstance(data, MilestonePlacement):
        return data
    if isinstance(data, dict):
        if data.get("workstream_id") is None:
            raise ValueError("milestone placement requires workstream_id")
        position = data.get("position") or {}
        return MilestonePlacement(
            workstream_id=int(data["workstream_id"]),
            x=float(position.get("x", data.get("x", 0.0))),
            y=float(position.get("y", data.get("y", 0.0))),
        )
    raise ValueError("milestone placement must be a MilestonePlacement or a mapping")


STEP_DESCRIPTIONS: dict[EditMode, dict[int, str]] = {
    EditMode.DEPENDENCY_CREATOR: {
        0: "Click source milestone",
        1: "Click target milestone",
        2: "Confirm dependency creation",
    },
    EditMode.ACTIVITY_BUILDER: {
        0: "Click source milestone",
        1: "Click target milestone",
        2: "Configure activity details",
    },
    EditMode.MILESTONE_EDITOR: {
        0: "Click milestone to edit",
        1: "Edit milestone details",
    },
    EditMode.MILESTONE_CREATOR: {
        0: "Click in workstream area",
        1: "Configure new milestone",
    },
    EditMode.TIMELINE_ADJUSTER: {
        0: "Select milestones to reschedule",
    },
}

DEFAULT_STEP_DESCRIPTION = "Select items to edit"


def step_description(mode: EditMode, step: int, selected_count: int) -> str:
    if mode == EditMode.TIMELINE_ADJUSTER and step == 1:
        return f"{selected_count} milestone(s) selected"
    return STEP_DESCRIPTIONS.get(mode, {}).get(step, DEFAULT_STEP_DESCRIPTION)
