from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from roadmap_editor.core.model import Activity, Milestone, Workstream


ALLOWED_STATUSES: set[str] = {"not_started", "in_progress", "completed"}


def parse_date(v: Any, *, field_name: str) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v[:10])
        except ValueError as e:
            raise ValueError(f"{field_name} must be an ISO date (YYYY-MM-DD), got {v!r}") from e
    raise ValueError(f"{field_name} must be a date, got {type(v).__name__}")


def _int(v: Any, *, field_name: str) -> int:
    if isinstance(v, bool):
        raise ValueError(f"{field_name} must be an integer")
    if isinstance(v, int):
        return v
    if isinstance(v, str) and v.strip().lstrip("-").isdigit():
        return int(v)
    raise ValueError(f"{field_name} must be an integer, got {v!r}")


def _optional_int(v: Any, *, field_name: str) -> Optional[int]:
    if v is None or v == "":
        return None
    return _int(v, field_name=field_name)


def _int_list(v: Any, *, field_name: str) -> list[int]:
    if v is None:
        return []
    if not isinstance(v, list):
        raise ValueError(f"{field_name} must be an array of integers")
    return [_int(x, field_name=f"{field_name}[{i}]") for i, x in enumerate(v)]


def parse_activity(raw: dict[str, Any]) -> Activity:
    """Build an Activity from a plain record (form payload, YAML or JSON).

    Raises ValueError on shape errors. Range checks (priority, date order)
    belong to the validator, not here.
    """

    if not isinstance(raw, dict):
        raise ValueError("activity must be an object")

    status = raw.get("status") or "not_started"
    if status not in ALLOWED_STATUSES:
        raise ValueError(f"status must be one of {sorted(ALLOWED_STATUSES)}")

    priority = raw.get("priority")
    return Activity(
        id=_int(raw.get("id"), field_name="id"),
        name=str(raw.get("name") or ""),
        status=status,
        priority=2 if priority is None else _int(priority, field_name="priority"),
        target_start_date=parse_date(raw.get("target_start_date"), field_name="target_start_date"),
        target_end_date=parse_date(raw.get("target_end_date"), field_name="target_end_date"),
        source_milestone=_optional_int(raw.get("source_milestone"), field_name="source_milestone"),
        target_milestone=_optional_int(raw.get("target_milestone"), field_name="target_milestone"),
        supported_milestones=_int_list(
            raw.get("supported_milestones"), field_name="supported_milestones"
        ),
        additional_milestones=_int_list(
            raw.get("additional_milestones"), field_name="additional_milestones"
        ),
        prerequisite_activities=_int_list(
            raw.get("prerequisite_activities"), field_name="prerequisite_activities"
        ),
        parallel_activities=_int_list(
            raw.get("parallel_activities"), field_name="parallel_activities"
        ),
        successive_activities=_int_list(
            raw.get("successive_activities"), field_name="successive_activities"
        ),
    )


def parse_milestone(raw: dict[str, Any], *, workstream: Optional[int] = None) -> Milestone:
    if not isinstance(raw, dict):
        raise ValueError("milestone must be an object")

    ws = _optional_int(raw.get("workstream"), field_name="workstream")
    return Milestone(
        id=_int(raw.get("id"), field_name="id"),
        name=str(raw.get("name") or ""),
        status=str(raw.get("status") or "not_started"),
        deadline=parse_date(raw.get("deadline"), field_name="deadline"),
        workstream=ws if ws is not None else workstream,
        dependencies=_int_list(raw.get("dependencies"), field_name="dependencies"),
    )


def parse_workstream(raw: dict[str, Any], *, program: Optional[int] = None) -> Workstream:
    if not isinstance(raw, dict):
        raise ValueError("workstream must be an object")

    prog = _optional_int(raw.get("program"), field_name="program")
    return Workstream(
        id=_int(raw.get("id"), field_name="id"),
        name=str(raw.get("name") or ""),
        program=prog if prog is not None else program,
    )
