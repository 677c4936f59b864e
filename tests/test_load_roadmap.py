from datetime import date

from roadmap_editor.core.errors import RoadmapLoadError
from roadmap_editor.core.io.load_roadmap import build_index, load_roadmap, load_roadmap_document


def test_load_yaml_success():
    index = load_roadmap("examples/basic-roadmap.yaml")
    assert index.strategy_id == 1
    assert set(index.activities_by_id) == {101, 102, 103, 201}
    assert index.milestones_by_id[2].deadline == date(2025, 4, 1)
    assert index.milestones_by_id[4].dependencies == [3, 2]


def test_milestones_inherit_enclosing_workstream():
    index = load_roadmap("examples/basic-roadmap.yaml")
    assert index.milestone_workstreams() == {1: 10, 2: 10, 3: 20, 4: 20}
    assert index.workstreams_by_id[20].program == 100


def test_activities_nested_under_milestones_are_collected():
    index = load_roadmap("examples/basic-roadmap.yaml")
    rollout = index.activities_by_id[201]
    assert rollout.prerequisite_activities == [102]
    assert rollout.source_milestone == 3


def test_load_missing_file():
    try:
        load_roadmap("examples/does-not-exist.yaml")
        assert False, "expected RoadmapLoadError"
    except RoadmapLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "roadmap.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_roadmap_document(str(p))
        assert False, "expected RoadmapLoadError"
    except RoadmapLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_json_dates_are_parsed(tmp_path):
    p = tmp_path / "roadmap.json"
    p.write_text(
        '{"strategy": {"id": 3, "programs": [{"id": 1, "workstreams": [{"id": 7, '
        '"milestones": [{"id": 9, "deadline": "2025-02-03T00:00:00Z"}]}]}]}}',
        encoding="utf-8",
    )
    index = load_roadmap(str(p))
    assert index.milestones_by_id[9].deadline == date(2025, 2, 3)
    assert index.milestones_by_id[9].workstream == 7


def test_invalid_record_reports_path():
    strategy = {
        "__file__": "x.yaml",
        "programs": [{"id": 1, "workstreams": [{"id": 2, "activities": [{"id": "abc"}]}]}],
    }
    try:
        build_index(strategy)
        assert False, "expected RoadmapLoadError"
    except RoadmapLoadError as e:
        assert e.code == "E_INVALID_RECORD"
        assert e.path == "programs[0].workstreams[0].activities[0]"
        assert str(e).startswith("x.yaml:programs[0]")


def test_top_level_requires_strategy(tmp_path):
    p = tmp_path / "roadmap.yaml"
    p.write_text("programs: []\n", encoding="utf-8")
    try:
        load_roadmap(str(p))
        assert False, "expected RoadmapLoadError"
    except RoadmapLoadError as e:
        assert e.code == "E_INVALID_TOP_LEVEL"
