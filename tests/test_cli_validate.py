import json

from typer.testing import CliRunner

from roadmap_editor.cli import app


runner = CliRunner()


def test_cli_validate_activity_success():
    r = runner.invoke(app, ["validate-activity", "examples/basic-roadmap.yaml", "101"])
    assert r.exit_code == 0
    assert "OK: activity 101 valid" in r.output
    assert 'INFO: Runs in parallel with "Write docs"' in r.output


def test_cli_validate_activity_cycle():
    r = runner.invoke(app, ["validate-activity", "examples/invalid-roadmap.yaml", "403"])
    assert r.exit_code == 2
    assert "E_VALIDATION" in r.output
    assert "Circular dependency" in r.output


def test_cli_validate_activity_workstream_mismatch_json():
    r = runner.invoke(
        app, ["validate-activity", "examples/invalid-roadmap.yaml", "301", "--format", "json"]
    )
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["tool"] == "roadmap"
    assert payload["ok"] is False
    assert payload["error_count"] == 1
    message = payload["errors"][0]["message"]
    assert "workstream 10" in message and "workstream 20" in message


def test_cli_validate_activity_unknown_id():
    r = runner.invoke(app, ["validate-activity", "examples/basic-roadmap.yaml", "999"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_ACTIVITY" in r.output


def test_cli_validate_activity_missing_file():
    r = runner.invoke(app, ["validate-activity", "examples/nope.yaml", "1"])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output


def test_cli_validate_activity_with_config(tmp_path):
    cfg = tmp_path / "roadmap.yaml"
    cfg.write_text("validator:\n  max_parallel: 0\n", encoding="utf-8")
    r = runner.invoke(
        app,
        ["validate-activity", "examples/basic-roadmap.yaml", "101", "--config", str(cfg)],
    )
    assert r.exit_code == 0
    assert "WARN:" in r.output


def test_cli_unknown_format():
    r = runner.invoke(
        app, ["validate-activity", "examples/basic-roadmap.yaml", "101", "--format", "xml"]
    )
    assert r.exit_code == 2
    assert "E_VALIDATE_UNKNOWN_FORMAT" in r.output


def test_cli_validate_dependencies():
    ok = runner.invoke(app, ["validate-dependencies", "examples/basic-roadmap.yaml"])
    assert ok.exit_code == 0
    assert "OK: 3 dependencies valid" in ok.output

    bad = runner.invoke(
        app, ["validate-dependencies", "examples/invalid-roadmap.yaml", "--format", "json"]
    )
    assert bad.exit_code == 2
    messages = [e["message"] for e in json.loads(bad.stdout)["errors"]]
    assert any("Circular dependency" in m for m in messages)
    assert any("Timeline conflict" in m for m in messages)
