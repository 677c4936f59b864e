from datetime import date

from roadmap_editor.core.config import ValidatorThresholds
from roadmap_editor.core.model import Activity
from roadmap_editor.core.validate.validate_activity import (
    find_cycle_participants,
    validate_activity,
)


WORKSTREAMS = {1: 10, 2: 10, 3: 20}


def _act(id, **kw):
    kw.setdefault("source_milestone", 1)
    kw.setdefault("target_milestone", 2)
    return Activity(id=id, **kw)


def _cycle_errors(report):
    return [e for e in report.errors if "Circular dependency" in e]


def test_closing_successive_chain_reports_cycle():
    a = _act(1, successive_activities=[2])
    b = _act(2, successive_activities=[3])
    c = _act(3, successive_activities=[])
    universe = {1: a, 2: b, 3: c}

    edited = _act(3, successive_activities=[1])
    report = validate_activity(edited, universe, WORKSTREAMS)

    cycles = _cycle_errors(report)
    assert cycles
    assert any(str(n) in cycles[0] for n in (1, 2, 3))
    assert not report.ok


def test_acyclic_edge_produces_no_cycle_error():
    a = _act(1, successive_activities=[2])
    b = _act(2, successive_activities=[3])
    c = _act(3)
    universe = [a, b, c]

    edited = _act(4, prerequisite_activities=[3])
    report = validate_activity(edited, universe, WORKSTREAMS)
    assert _cycle_errors(report) == []
    assert report.ok


def test_traversal_follows_current_universe_records():
    # Stored copy of 2 points back at 1; the updated copy no longer does.
    stored = {1: _act(1, successive_activities=[2]), 2: _act(2, successive_activities=[1])}
    edited = _act(2, successive_activities=[])
    report = validate_activity(_act(1, successive_activities=[2]), {**stored, 2: edited}, WORKSTREAMS)
    assert _cycle_errors(report) == []

    report = validate_activity(_act(1, successive_activities=[2]), stored, WORKSTREAMS)
    assert _cycle_errors(report)


def test_repeated_validation_is_independent():
    universe = {1: _act(1, successive_activities=[2]), 2: _act(2, successive_activities=[3])}
    cyclic = _act(3, successive_activities=[1])
    clean = _act(3)

    first = validate_activity(cyclic, universe, WORKSTREAMS)
    second = validate_activity(clean, universe, WORKSTREAMS)
    third = validate_activity(cyclic, universe, WORKSTREAMS)

    assert _cycle_errors(first)
    assert _cycle_errors(second) == []
    assert _cycle_errors(third) == _cycle_errors(first)


def test_find_cycle_participants_uses_fresh_state_per_call():
    graph = {1: _act(1, successive_activities=[2]), 2: _act(2, successive_activities=[1])}
    assert find_cycle_participants([1], graph.get) == [1]
    assert find_cycle_participants([1], graph.get) == [1]
    assert find_cycle_participants([3], graph.get) == []


def test_parallel_edges_count_for_cycles():
    universe = {5: _act(5, parallel_activities=[6]), 6: _act(6)}
    edited = _act(6, prerequisite_activities=[5])
    report = validate_activity(edited, universe, WORKSTREAMS)
    assert _cycle_errors(report)


def test_same_id_in_two_categories_is_one_error():
    edited = _act(10, prerequisite_activities=[7], parallel_activities=[7])
    report = validate_activity(edited, {7: _act(7)}, WORKSTREAMS)
    assert len(report.errors) == 1
    assert "more than one dependency category" in report.errors[0]
    assert "7" in report.errors[0]


def test_self_reference_is_an_error():
    report = validate_activity(_act(4, parallel_activities=[4]), {}, WORKSTREAMS)
    assert any("cannot depend on itself" in e for e in report.errors)


def test_workstream_mismatch_names_both_workstreams():
    ms = {1: 10, 2: 20}
    report = validate_activity(_act(1, source_milestone=1, target_milestone=2), {}, ms)
    assert len(report.errors) == 1
    assert "10" in report.errors[0]
    assert "20" in report.errors[0]


def test_missing_and_identical_milestones():
    report = validate_activity(_act(1, source_milestone=None, target_milestone=None), {}, WORKSTREAMS)
    assert "Source milestone is required" in report.errors
    assert "Target milestone is required" in report.errors

    report = validate_activity(_act(1, source_milestone=2, target_milestone=2), {}, WORKSTREAMS)
    assert report.errors == ["Source and target milestones must be different"]


def test_supported_milestones_may_cross_workstreams():
    report = validate_activity(_act(1, supported_milestones=[3], additional_milestones=[3]), {}, WORKSTREAMS)
    assert report.ok


def test_date_order_and_priority():
    bad = _act(
        1,
        priority=4,
        target_start_date=date(2025, 3, 1),
        target_end_date=date(2025, 3, 1),
    )
    report = validate_activity(bad, {}, WORKSTREAMS)
    assert any("must be before target end date" in e for e in report.errors)
    assert any("Priority must be one of [1, 2, 3]" in e for e in report.errors)


def test_cardinality_warnings_do_not_block():
    prereqs = list(range(100, 106))
    parallel = list(range(200, 209))
    report = validate_activity(
        _act(1, prerequisite_activities=prereqs, parallel_activities=parallel), {}, WORKSTREAMS
    )
    assert report.ok
    assert len(report.warnings) == 2

    at_limit = _act(1, prerequisite_activities=prereqs[:5], parallel_activities=parallel[:8])
    assert validate_activity(at_limit, {}, WORKSTREAMS).warnings == []


def test_thresholds_are_configurable():
    report = validate_activity(
        _act(1, prerequisite_activities=[5, 6]),
        {},
        WORKSTREAMS,
        thresholds=ValidatorThresholds(max_prerequisites=1, max_parallel=8),
    )
    assert len(report.warnings) == 1


def test_parallel_overlap_is_an_insight():
    other = _act(
        2,
        name="Write docs",
        target_start_date=date(2025, 2, 1),
        target_end_date=date(2025, 2, 28),
    )
    far = _act(3, target_start_date=date(2025, 6, 1), target_end_date=date(2025, 7, 1))
    edited = _act(
        1,
        parallel_activities=[2, 3, 99],
        target_start_date=date(2025, 1, 6),
        target_end_date=date(2025, 2, 14),
    )
    report = validate_activity(edited, {2: other, 3: far}, WORKSTREAMS)
    assert report.ok
    assert len(report.insights) == 1
    assert "Write docs" in report.insights[0]
    assert "2025-02-01" in report.insights[0]


def test_accepts_plain_records():
    form = {
        "id": 3,
        "source_milestone": "1",
        "target_milestone": 2,
        "successive_activities": ["1"],
        "target_start_date": "2025-01-01",
        "target_end_date": "2025-01-31",
    }
    universe = [{"id": 1, "successive_activities": [2]}, {"id": 2, "successive_activities": [3]}]
    report = validate_activity(form, universe, WORKSTREAMS)
    assert _cycle_errors(report)


def test_diamond_is_not_a_cycle():
    universe = {
        2: _act(2, successive_activities=[4]),
        3: _act(3, successive_activities=[4]),
        4: _act(4),
    }
    edited = _act(1, successive_activities=[2, 3])
    report = validate_activity(edited, universe, WORKSTREAMS)
    assert _cycle_errors(report) == []
    assert report.ok


def test_fully_explored_nodes_are_not_walked_again():
    graph = {
        1: _act(1, successive_activities=[3]),
        2: _act(2, successive_activities=[3]),
        3: _act(3, successive_activities=[4]),
        4: _act(4),
    }
    calls = []

    def resolve(node_id):
        calls.append(node_id)
        return graph.get(node_id)

    assert find_cycle_participants([1, 2, 3], resolve) == []
    assert sorted(calls) == [1, 2, 3, 4]


def test_long_chain_does_not_exhaust_recursion():
    n = 3000
    universe = {i: _act(i, successive_activities=[i + 1]) for i in range(1, n)}
    universe[n] = _act(n)

    edited = _act(0, successive_activities=[1])
    assert _cycle_errors(validate_activity(edited, universe, WORKSTREAMS)) == []

    universe[n] = _act(n, successive_activities=[0])
    assert _cycle_errors(validate_activity(edited, universe, WORKSTREAMS))


def test_unknown_milestone_workstreams_are_errors():
    report = validate_activity(_act(1, source_milestone=98, target_milestone=99), {}, {1: 10})
    assert "Workstream of source milestone 98 is unknown" in report.errors
    assert "Workstream of target milestone 99 is unknown" in report.errors
    assert not report.ok

    report = validate_activity(_act(1, source_milestone=1, target_milestone=99), {}, {1: 10, 99: None})
    assert report.errors == ["Workstream of target milestone 99 is unknown"]
