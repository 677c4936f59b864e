from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Iterator, Mapping, Optional

from roadmap_editor.core.model import Milestone, MilestoneDependency, ValidationReport


def validate_milestone_dependencies(
    dependencies: Iterable[MilestoneDependency],
    milestones: Mapping[int, Milestone],
) -> ValidationReport:
    """Check pending milestone -> milestone dependency edges.

    - cycle among the edges (one error, naming the first milestone found on a cycle)
    - source deadline must be strictly before target deadline
    """

    deps = list(dependencies)
    errors: list[str] = []

    outgoing: dict[int, list[int]] = defaultdict(list)
    for d in deps:
        outgoing[d.source_id].append(d.target_id)

    cycle_start = _first_cycle_start(sorted(set(milestones.keys()) | set(outgoing.keys())), outgoing)
    if cycle_start is not None:
        errors.append(f"Circular dependency detected involving milestone {cycle_start}")

    for d in deps:
        if d.source_id == d.target_id:
            errors.append(f"Milestone {d.source_id} cannot depend on itself")
            continue
        source = milestones.get(d.source_id)
        target = milestones.get(d.target_id)
        if source is None or target is None:
            continue
        if source.deadline is None or target.deadline is None:
            continue
        if source.deadline >= target.deadline:
            errors.append(
                f'Timeline conflict: "{source.name or source.id}" must complete before '
                f'"{target.name or target.id}"'
            )

    return ValidationReport(errors=errors, warnings=[], insights=[])


def existing_dependencies(milestones: Mapping[int, Milestone]) -> list[MilestoneDependency]:
    """Edges already recorded on milestones (dependency -> dependent)."""

    out: list[MilestoneDependency] = []
    for mid in sorted(milestones.keys()):
        for dep in milestones[mid].dependencies:
            out.append(MilestoneDependency(source_id=dep, target_id=mid))
    return out


def _first_cycle_start(starts: Iterable[int], outgoing: Mapping[int, list[int]]) -> Optional[int]:
    """Return the first start id from which a cycle is reachable, or None.

    ``visited`` is shared across start ids: a node fully explored without
    finding a cycle cannot lead to one later.
    """

    visited: set[int] = set()
    recursion_stack: set[int] = set()

    for start in starts:
        if start in visited:
            continue
        visited.add(start)
        recursion_stack.add(start)
        frames: list[tuple[int, Iterator[int]]] = [(start, iter(outgoing.get(start, [])))]
        while frames:
            u, children = frames[-1]
            v = next(children, None)
            if v is None:
                frames.pop()
                recursion_stack.discard(u)
            elif v in recursion_stack:
                return start
            elif v not in visited:
                visited.add(v)
                recursion_stack.add(v)
                frames.append((v, iter(outgoing.get(v, []))))
    return None
