from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from roadmap_editor.core.errors import RoadmapLoadError
from roadmap_editor.core.io.records import parse_activity, parse_milestone, parse_workstream
from roadmap_editor.core.model import Activity, Milestone, RoadmapIndex, Workstream


def load_roadmap_document(path: str) -> dict[str, Any]:
    """Load a YAML/JSON roadmap file.

    Returns the top-level ``strategy`` mapping with ``__file__`` attached.
    Does not coerce types; build_index owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise RoadmapLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise RoadmapLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise RoadmapLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except RoadmapLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise RoadmapLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict) or not isinstance(data.get("strategy"), dict):
        raise RoadmapLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping with a 'strategy' object",
            file=str(p),
        )

    strategy = dict(data["strategy"])
    strategy["__file__"] = str(p)
    return strategy


def build_index(strategy: dict[str, Any]) -> RoadmapIndex:
    """Flatten strategy -> programs -> workstreams -> milestones -> activities.

    Milestones without an explicit ``workstream`` inherit the enclosing one.
    Activities may hang off a workstream or a milestone; an id seen twice keeps
    the first record.
    """

    file = strategy.get("__file__") if isinstance(strategy.get("__file__"), str) else None

    activities: dict[int, Activity] = {}
    milestones: dict[int, Milestone] = {}
    workstreams: dict[int, Workstream] = {}

    def fail(path: str, e: Exception) -> RoadmapLoadError:
        return RoadmapLoadError(code="E_INVALID_RECORD", message=str(e), file=file, path=path)

    def add_activities(raw_list: Any, path: str) -> None:
        for ai, raw in enumerate(_as_list(raw_list, path=path, file=file)):
            try:
                act = parse_activity(raw)
            except ValueError as e:
                raise fail(f"{path}[{ai}]", e) from e
            activities.setdefault(act.id, act)

    strategy_id: Optional[int] = strategy.get("id") if isinstance(strategy.get("id"), int) else None

    for pi, program in enumerate(_as_list(strategy.get("programs"), path="programs", file=file)):
        p_path = f"programs[{pi}]"
        if not isinstance(program, dict):
            raise fail(p_path, ValueError("program must be an object"))
        program_id = program.get("id") if isinstance(program.get("id"), int) else None

        ws_list = _as_list(program.get("workstreams"), path=f"{p_path}.workstreams", file=file)
        for wi, raw_ws in enumerate(ws_list):
            w_path = f"{p_path}.workstreams[{wi}]"
            try:
                ws = parse_workstream(raw_ws, program=program_id)
            except ValueError as e:
                raise fail(w_path, e) from e
            workstreams[ws.id] = ws

            ms_list = _as_list(raw_ws.get("milestones"), path=f"{w_path}.milestones", file=file)
            for mi, raw_m in enumerate(ms_list):
                m_path = f"{w_path}.milestones[{mi}]"
                try:
                    ms = parse_milestone(raw_m, workstream=ws.id)
                except ValueError as e:
                    raise fail(m_path, e) from e
                milestones[ms.id] = ms
                add_activities(raw_m.get("activities"), f"{m_path}.activities")

            add_activities(raw_ws.get("activities"), f"{w_path}.activities")

    return RoadmapIndex(
        strategy_id=strategy_id,
        activities_by_id=activities,
        milestones_by_id=milestones,
        workstreams_by_id=workstreams,
    )


def load_roadmap(path: str) -> RoadmapIndex:
    return build_index(load_roadmap_document(path))


def _as_list(v: Any, *, path: str, file: Optional[str]) -> list[Any]:
    if v is None:
        return []
    if not isinstance(v, list):
        raise RoadmapLoadError(
            code="E_INVALID_TYPE",
            message=f"{path.rsplit('.', 1)[-1]} must be an array",
            file=file,
            path=path,
        )
    return v
