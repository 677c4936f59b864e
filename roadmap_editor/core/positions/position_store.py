from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from roadmap_editor.core.errors import PositionStoreError
from roadmap_editor.core.model import ALLOWED_NODE_TYPES, NodeId, NodePosition, NodeType


logger = logging.getLogger(__name__)


class PositionBackend(Protocol):
    def load(self, strategy_id: int, node_type: NodeType) -> list[NodePosition]: ...

    def save(self, strategy_id: int, node_type: NodeType, position: NodePosition) -> None: ...


class InMemoryPositionBackend:
    def __init__(self) -> None:
        self._data: dict[tuple[int, str], dict[str, NodePosition]] = {}

    def load(self, strategy_id: int, node_type: NodeType) -> list[NodePosition]:
        return list(self._data.get((strategy_id, node_type), {}).values())

    def save(self, strategy_id: int, node_type: NodeType, position: NodePosition) -> None:
        self._data.setdefault((strategy_id, node_type), {})[position.storage_key] = position


class YamlPositionBackend:
    """Positions persisted as one YAML document.

    Layout:
      <strategy_id>:
        <node_type>:
          <storage_key>: {node_id, rel_y, is_duplicate, duplicate_key, original_node_id}
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[Any, Any]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"{self.path}: position file must be a mapping")
        return raw

    def load(self, strategy_id: int, node_type: NodeType) -> list[NodePosition]:
        by_key = (self._read().get(strategy_id) or {}).get(node_type) or {}
        out: list[NodePosition] = []
        for key, rec in by_key.items():
            is_dup = bool(rec.get("is_duplicate", False))
            out.append(
                NodePosition(
                    node_type=node_type,
                    node_id=rec.get("node_id", key),
                    rel_y=float(rec["rel_y"]),
                    is_duplicate=is_dup,
                    duplicate_key=rec.get("duplicate_key") or None,
                    original_node_id=rec.get("original_node_id"),
                )
            )
        return out

    def save(self, strategy_id: int, node_type: NodeType, position: NodePosition) -> None:
        data = self._read()
        by_key = data.setdefault(strategy_id, {}).setdefault(node_type, {})
        by_key[position.storage_key] = {
            "node_id": position.node_id,
            "rel_y": position.rel_y,
            "is_duplicate": position.is_duplicate,
            "duplicate_key": position.duplicate_key or "",
            "original_node_id": position.original_node_id,
        }
        if str(self.path.parent) not in (".", ""):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(data, sort_keys=True), encoding="utf-8")


class PositionStore:
    """Vertical offsets of canvas nodes, scoped to (strategy, node type).

    Duplicates are stored under their duplicate key, so a second placement of
    a milestone never overwrites the canonical node's own offset.
    """

    def __init__(self, backend: Optional[PositionBackend] = None) -> None:
        self.backend: PositionBackend = backend or InMemoryPositionBackend()
        self._cache: dict[tuple[int, str], list[NodePosition]] = {}

    def get(self, strategy_id: int, node_type: NodeType) -> list[NodePosition]:
        _check_node_type(node_type)
        key = (strategy_id, node_type)
        if key not in self._cache:
            try:
                self._cache[key] = self.backend.load(strategy_id, node_type)
            except Exception as e:
                raise PositionStoreError(
                    code="E_POSITION_BACKEND",
                    message=f"failed to load positions: {e}",
                    path=f"{strategy_id}/{node_type}",
                ) from e
        return list(self._cache[key])

    def upsert(
        self,
        strategy_id: int,
        node_type: NodeType,
        node_id: NodeId,
        rel_y: float,
        is_duplicate: bool = False,
        duplicate_key: Optional[str] = None,
        original_node_id: Optional[int] = None,
    ) -> NodePosition:
        _check_node_type(node_type)
        if is_duplicate and not (duplicate_key or "").strip():
            raise PositionStoreError(
                code="E_DUPLICATE_KEY_REQUIRED",
                message="duplicate positions require a non-empty duplicate_key",
                path=f"{strategy_id}/{node_type}/{node_id}",
            )

        position = NodePosition(
            node_type=node_type,
            node_id=duplicate_key if is_duplicate and duplicate_key else node_id,
            rel_y=float(rel_y),
            is_duplicate=is_duplicate,
            duplicate_key=duplicate_key if is_duplicate else None,
            original_node_id=original_node_id,
        )
        try:
            self.backend.save(strategy_id, node_type, position)
        except Exception as e:
            raise PositionStoreError(
                code="E_POSITION_BACKEND",
                message=f"failed to save position: {e}",
                path=f"{strategy_id}/{node_type}/{position.storage_key}",
            ) from e

        self._cache.pop((strategy_id, node_type), None)
        logger.debug(
            "saved %s position %s for strategy %s (rel_y=%.4f)",
            node_type,
            position.storage_key,
            strategy_id,
            position.rel_y,
        )
        return position

    def find(self, strategy_id: int, node_type: NodeType, key: NodeId) -> Optional[NodePosition]:
        for p in self.get(strategy_id, node_type):
            if p.storage_key == str(key):
                return p
        return None

    def ensure_duplicate(
        self,
        strategy_id: int,
        duplicate_key: str,
        original_node_id: int,
        rel_y: float,
        node_type: NodeType = "milestone",
    ) -> bool:
        """Record a duplicate placement once; later calls leave it alone.

        Returns True when a new record was written.
        """
        if self.find(strategy_id, node_type, duplicate_key) is not None:
            return False
        self.upsert(
            strategy_id,
            node_type,
            duplicate_key,
            rel_y,
            is_duplicate=True,
            duplicate_key=duplicate_key,
            original_node_id=original_node_id,
        )
        logger.info("created duplicate placement %s of node %s", duplicate_key, original_node_id)
        return True


def _check_node_type(node_type: str) -> None:
    if node_type not in ALLOWED_NODE_TYPES:
        raise PositionStoreError(
            code="E_INVALID_NODE_TYPE",
            message=f"node_type must be one of {sorted(ALLOWED_NODE_TYPES)}",
            path="node_type",
        )
