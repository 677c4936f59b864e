from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional

from roadmap_editor.core.edit.modes import (
    EditMode,
    EditState,
    MilestoneCreatorState,
    MilestoneEditorState,
    PairSelectionState,
    TimelineAdjusterState,
)
from roadmap_editor.core.errors import CommitError


logger = logging.getLogger(__name__)


MilestoneUpdateFn = Callable[[str, Any], Awaitable[None]]
DependencyCreateFn = Callable[[Any, Any], Awaitable[None]]
ActivityCreateFn = Callable[[Any, Any, Any], Awaitable[None]]
MilestoneCreateFn = Callable[[int, dict[str, float], Any], Awaitable[None]]
TimelineUpdateFn = Callable[[list[str], Any], Awaitable[None]]


@dataclass(frozen=True)
class CommitCallbacks:
    """Externally owned persistence operations.

    Each callback must raise on failure; returning normally means the write
    happened.
    """

    on_milestone_update: Optional[MilestoneUpdateFn] = None
    on_dependency_create: Optional[DependencyCreateFn] = None
    on_activity_create: Optional[ActivityCreateFn] = None
    on_milestone_create: Optional[MilestoneCreateFn] = None
    on_timeline_update: Optional[TimelineUpdateFn] = None


@dataclass(frozen=True)
class PendingCommit:
    mode: EditMode
    call: Callable[[], Awaitable[None]]


class CommitPipeline:
    def __init__(self, callbacks: Optional[CommitCallbacks] = None) -> None:
        self.callbacks = callbacks or CommitCallbacks()

    def prepare(self, state: EditState, additional_data: Any = None) -> Optional[PendingCommit]:
        """Resolve the operation for a state, or None when its precondition fails."""

        cb = self.callbacks

        if isinstance(state, PairSelectionState) and state.complete:
            source_id, target_id = _as_id(state.first), _as_id(state.second)
            if state.mode == EditMode.DEPENDENCY_CREATOR and cb.on_dependency_create:
                fn_dep = cb.on_dependency_create
                return PendingCommit(state.mode, lambda: fn_dep(source_id, target_id))
            if state.mode == EditMode.ACTIVITY_BUILDER and cb.on_activity_create:
                fn_act = cb.on_activity_create
                return PendingCommit(
                    state.mode, lambda: fn_act(source_id, target_id, additional_data)
                )
            return None

        if isinstance(state, MilestoneEditorState) and state.selected is not None:
            if cb.on_milestone_update:
                fn_upd = cb.on_milestone_update
                milestone_id = state.selected
                return PendingCommit(state.mode, lambda: fn_upd(milestone_id, additional_data))
            return None

        if isinstance(state, MilestoneCreatorState) and state.placement is not None:
            if cb.on_milestone_create and additional_data is not None:
                fn_new = cb.on_milestone_create
                placement = state.placement
                return PendingCommit(
                    state.mode,
                    lambda: fn_new(placement.workstream_id, placement.position, additional_data),
                )
            return None

        if isinstance(state, TimelineAdjusterState) and state.selected:
            deadline = _new_deadline(additional_data)
            if cb.on_timeline_update and deadline is not None:
                fn_tl = cb.on_timeline_update
                ids = list(state.selected)
                return PendingCommit(state.mode, lambda: fn_tl(ids, deadline))
            return None

        return None

    async def run(self, pending: PendingCommit) -> None:
        try:
            await pending.call()
        except Exception as e:
            logger.warning("commit failed for mode %s: %s", pending.mode.value, e)
            raise CommitError(
                code="E_COMMIT_FAILED",
                message=f"{pending.mode.value} commit failed: {e}",
                path=pending.mode.value,
            ) from e

    async def commit(self, state: EditState, additional_data: Any = None) -> bool:
        """Run the state's operation. False when nothing was called."""

        pending = self.prepare(state, additional_data)
        if pending is None:
            return False
        await self.run(pending)
        return True


def _as_id(node_id: Optional[str]) -> Any:
    # Canvas ids arrive as strings; numeric ones go to the domain layer as ints.
    if node_id is not None and node_id.isdigit():
        return int(node_id)
    return node_id


def _new_deadline(additional_data: Any) -> Optional[date]:
    if additional_data is None:
        return None
    value = additional_data
    if isinstance(additional_data, dict):
        value = additional_data.get("new_deadline")
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None
