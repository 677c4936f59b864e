from __future__ import annotations

import logging
from typing import Any, Optional, Union

from roadmap_editor.core.edit.commit import CommitCallbacks, CommitPipeline
from roadmap_editor.core.edit.modes import (
    EditMode,
    EditState,
    IdleState,
    MilestoneCreatorState,
    cleared,
    initial_state,
    select,
    step_description,
    with_temp_data,
)
from roadmap_editor.core.errors import EditInProgressError
from roadmap_editor.core.model import NodeId, NodeRef


logger = logging.getLogger(__name__)


class EditModeController:
    """Selection state machine behind the canvas quick-edit modes.

    Node clicks are synchronous transitions; ``execute_edit`` is the only
    awaiting call. A failed commit leaves the selection in place for retry.
    """

    def __init__(
        self,
        callbacks: Optional[CommitCallbacks] = None,
        *,
        pipeline: Optional[CommitPipeline] = None,
    ) -> None:
        self.pipeline = pipeline or CommitPipeline(callbacks)
        self._state: EditState = IdleState()
        self._in_flight = False

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def current_mode(self) -> EditMode:
        return self._state.mode

    @property
    def is_edit_mode(self) -> bool:
        return self._state.mode != EditMode.IDLE

    @property
    def selected_nodes(self) -> list[str]:
        return self._state.selected_nodes

    @property
    def selected_count(self) -> int:
        return len(self._state.selected_nodes)

    @property
    def step(self) -> int:
        return self._state.step

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    @property
    def can_execute(self) -> bool:
        if isinstance(self._state, MilestoneCreatorState):
            return self._state.placement is not None
        return self._state.step > 0 and bool(self._state.selected_nodes)

    def activate_mode(self, mode: Union[EditMode, str]) -> None:
        mode = EditMode(mode)
        logger.info("activating edit mode: %s", mode.value)
        self._state = initial_state(mode)

    def deactivate_mode(self) -> None:
        logger.info("deactivating edit mode: %s", self._state.mode.value)
        self._state = IdleState()

    def select_node(self, node_id: Union[NodeId, NodeRef], node_data: Any = None) -> None:
        self._state = select(self._state, canonical_node_id(node_id, node_data), node_data)

    def clear_selection(self) -> None:
        self._state = cleared(self._state)

    def update_temp_data(self, data: Any) -> None:
        self._state = with_temp_data(self._state, data)

    def is_node_selected(self, node_id: Union[NodeId, NodeRef], node_data: Any = None) -> bool:
        return canonical_node_id(node_id, node_data) in self._state.selected_nodes

    def get_step_description(self) -> str:
        return step_description(self._state.mode, self._state.step, self.selected_count)

    async def execute_edit(self, additional_data: Any = None) -> bool:
        """Commit the current selection.

        Returns False without side effects when the mode's selection is
        incomplete or its callback is missing. Raises CommitError when the
        callback fails (selection kept) and EditInProgressError when a commit
        is already pending.
        """

        if self._in_flight:
            raise EditInProgressError(
                code="E_EDIT_IN_PROGRESS",
                message="an edit is already being committed",
                path=self._state.mode.value,
            )

        state = self._state
        self._in_flight = True
        try:
            committed = await self.pipeline.commit(state, additional_data)
        finally:
            self._in_flight = False
        if not committed:
            return False

        # The user may have switched modes while the commit was pending.
        if self._state is state:
            self._state = cleared(state)
        return True


def canonical_node_id(node_id: Union[NodeId, NodeRef], node_data: Any = None) -> str:
    """Collapse a duplicate placement to the id of its canonical node.

    ``node_id`` may be a bare canvas id or a NodeRef.
    """

    if isinstance(node_id, NodeRef):
        node_id = node_id.node_id

    original: Any = None
    if isinstance(node_data, dict):
        if node_data.get("is_duplicate"):
            original = node_data.get("original_node_id")
    elif getattr(node_data, "is_duplicate", False):
        original = getattr(node_data, "original_node_id", None)

    return str(original if original is not None else node_id)
