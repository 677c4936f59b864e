from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from roadmap_editor.core.config import DEFAULT_THRESHOLDS, ValidatorThresholds
from roadmap_editor.core.io.records import parse_activity
from roadmap_editor.core.model import ALLOWED_PRIORITIES, Activity, ValidationReport


ActivityLike = Union[Activity, dict[str, Any]]
Universe = Union[Mapping[int, ActivityLike], Iterable[ActivityLike]]


# Activity checks:
# - cycle across prerequisite/parallel/successive edges (error)
# - id in more than one relation list (error)
# - id referencing the activity itself (error)
# - source/target milestone locality (error)
# - start date before end date, priority in {1,2,3} (error)
# - too many prerequisites / parallel activities (warning)
# - overlapping parallel timelines (insight)


def validate_activity(
    activity: ActivityLike,
    universe: Universe,
    milestone_workstreams: Mapping[int, Optional[int]],
    *,
    thresholds: ValidatorThresholds = DEFAULT_THRESHOLDS,
) -> ValidationReport:
    """Validate the activity under edit against the known activity universe.

    Pure: all traversal state is built per call, so the same inputs always
    give the same report. Errors block saving; warnings and insights do not.
    """

    current = _coerce(activity)
    known = _index(universe)

    errors: list[str] = []
    warnings: list[str] = []
    insights: list[str] = []

    errors.extend(_self_reference_errors(current))
    errors.extend(_cycle_errors(current, known))
    errors.extend(_category_errors(current))
    errors.extend(_milestone_errors(current, milestone_workstreams))
    errors.extend(_field_errors(current))

    if len(current.prerequisite_activities) > thresholds.max_prerequisites:
        warnings.append(
            f"Activity has {len(current.prerequisite_activities)} prerequisites "
            f"(more than {thresholds.max_prerequisites}); consider splitting it"
        )
    if len(current.parallel_activities) > thresholds.max_parallel:
        warnings.append(
            f"Activity has {len(current.parallel_activities)} parallel activities "
            f"(more than {thresholds.max_parallel}); coordination may be difficult"
        )

    insights.extend(_parallel_overlap_insights(current, known))

    return ValidationReport(errors=errors, warnings=warnings, insights=insights)


def find_cycle_participants(
    start_ids: Iterable[int],
    resolve: Callable[[int], Optional[Activity]],
) -> list[int]:
    """Return ids found on the recursion stack while walking from start_ids.

    ``resolve(id)`` returns the Activity for an id or None. ``visited`` and the
    recursion stack are local to this call; a node already fully explored from
    an earlier start id is not walked again.
    """

    visited: set[int] = set()
    recursion_stack: set[int] = set()
    found: list[int] = []

    def enter(node_id: int, frames: list[tuple[int, Iterator[int]]]) -> None:
        if node_id in recursion_stack:
            if node_id not in found:
                found.append(node_id)
            return
        if node_id in visited:
            return

        visited.add(node_id)
        recursion_stack.add(node_id)
        act = resolve(node_id)
        frames.append((node_id, iter(act.related_ids() if act is not None else [])))

    # Iterative walk; chains can be longer than the recursion limit.
    for sid in start_ids:
        frames: list[tuple[int, Iterator[int]]] = []
        enter(sid, frames)
        while frames:
            node_id, children = frames[-1]
            nxt = next(children, None)
            if nxt is None:
                frames.pop()
                recursion_stack.discard(node_id)
            else:
                enter(nxt, frames)
    return found


def _cycle_errors(current: Activity, known: dict[int, Activity]) -> list[str]:
    def resolve(node_id: int) -> Optional[Activity]:
        if node_id == current.id:
            return current
        return known.get(node_id)

    starts = list(current.prerequisite_activities) + list(current.successive_activities)
    return [
        f"Circular dependency detected involving activity {nid}"
        for nid in find_cycle_participants(starts, resolve)
    ]


def _category_errors(current: Activity) -> list[str]:
    counts = Counter(current.related_ids())
    dupes = sorted(k for k, v in counts.items() if v > 1)
    if not dupes:
        return []
    ids = ", ".join(str(d) for d in dupes)
    return [
        f"Activities cannot appear in more than one dependency category "
        f"(prerequisite, parallel, successive): {ids}"
    ]


def _self_reference_errors(current: Activity) -> list[str]:
    if current.id in current.related_ids():
        return [f"Activity {current.id} cannot depend on itself"]
    return []


def _milestone_errors(
    current: Activity, milestone_workstreams: Mapping[int, Optional[int]]
) -> list[str]:
    src, tgt = current.source_milestone, current.target_milestone
    errors: list[str] = []
    if src is None:
        errors.append("Source milestone is required")
    if tgt is None:
        errors.append("Target milestone is required")
    if errors:
        return errors

    if src == tgt:
        return ["Source and target milestones must be different"]

    src_ws = milestone_workstreams.get(src)
    tgt_ws = milestone_workstreams.get(tgt)
    unknown = [
        f"Workstream of {label} milestone {mid} is unknown"
        for label, mid, ws in (("source", src, src_ws), ("target", tgt, tgt_ws))
        if ws is None
    ]
    if unknown:
        return unknown
    if src_ws != tgt_ws:
        return [
            f"Source milestone {src} (workstream {src_ws}) and target milestone {tgt} "
            f"(workstream {tgt_ws}) must belong to the same workstream"
        ]
    return []


def _field_errors(current: Activity) -> list[str]:
    errors: list[str] = []
    start, end = current.target_start_date, current.target_end_date
    if start is not None and end is not None and start >= end:
        errors.append(
            f"Target start date {start.isoformat()} must be before target end date {end.isoformat()}"
        )
    if current.priority not in ALLOWED_PRIORITIES:
        errors.append(f"Priority must be one of {sorted(ALLOWED_PRIORITIES)}, got {current.priority}")
    return errors


def _parallel_overlap_insights(current: Activity, known: dict[int, Activity]) -> list[str]:
    start, end = current.target_start_date, current.target_end_date
    if start is None or end is None:
        return []

    out: list[str] = []
    for pid in current.parallel_activities:
        other = known.get(pid)
        if other is None or other.target_start_date is None or other.target_end_date is None:
            continue
        lo = max(start, other.target_start_date)
        hi = min(end, other.target_end_date)
        if lo <= hi:
            label = other.name or f"activity {other.id}"
            out.append(
                f'Runs in parallel with "{label}" between {lo.isoformat()} and {hi.isoformat()}'
            )
    return out


def _coerce(a: ActivityLike) -> Activity:
    return a if isinstance(a, Activity) else parse_activity(a)


def _index(universe: Universe) -> dict[int, Activity]:
    if isinstance(universe, Mapping):
        items: Iterable[ActivityLike] = universe.values()
    else:
        items = universe
    out: dict[int, Activity] = {}
    for a in items:
        act = _coerce(a)
        out.setdefault(act.id, act)
    return out
