from typer.testing import CliRunner

from roadmap_editor.cli import app


runner = CliRunner()


def test_cli_positions_set_and_list(tmp_path):
    store = str(tmp_path / "positions.yaml")
    r = runner.invoke(app, ["positions", "set", "1", "milestone", "5", "0.25", "--store", store])
    assert r.exit_code == 0
    assert "OK: milestone 5 -> 0.2500" in r.output

    r = runner.invoke(
        app,
        [
            "positions",
            "set",
            "1",
            "milestone",
            "5",
            "0.6",
            "--duplicate-key",
            "5-dup1",
            "--original-id",
            "5",
            "--store",
            store,
        ],
    )
    assert r.exit_code == 0

    r = runner.invoke(app, ["positions", "list", "1", "milestone", "--store", store])
    assert r.exit_code == 0
    lines = r.output.strip().splitlines()
    assert lines == ["5: 0.2500", "5-dup1: 0.6000 (duplicate of 5)"]


def test_cli_positions_env_store(tmp_path, monkeypatch):
    monkeypatch.setenv("ROADMAP_POSITIONS_FILE", str(tmp_path / "env.yaml"))
    r = runner.invoke(app, ["positions", "set", "2", "workstream", "10", "0.5"])
    assert r.exit_code == 0
    assert (tmp_path / "env.yaml").exists()


def test_cli_positions_rejects_bad_node_type(tmp_path):
    store = str(tmp_path / "positions.yaml")
    r = runner.invoke(app, ["positions", "list", "1", "activity", "--store", store])
    assert r.exit_code == 2
    assert "E_INVALID_NODE_TYPE" in r.output
