from __future__ import annotations

import json
import logging
from typing import Any

import typer

from roadmap_editor.core.config import load_thresholds, positions_file
from roadmap_editor.core.errors import (
    ConfigError,
    PositionStoreError,
    RoadmapError,
    RoadmapLoadError,
)
from roadmap_editor.core.io.load_roadmap import load_roadmap
from roadmap_editor.core.model import ValidationReport
from roadmap_editor.core.positions.position_store import PositionStore, YamlPositionBackend
from roadmap_editor.core.validate.validate_activity import validate_activity
from roadmap_editor.core.validate.validate_milestones import (
    existing_dependencies,
    validate_milestone_dependencies,
)

app = typer.Typer(add_completion=False, no_args_is_help=True)
positions_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Node positions.")
app.add_typer(positions_app, name="positions")


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Roadmap editor CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("validate-activity")
def validate_activity_cmd(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    activity_id: int = typer.Argument(..., help="Id of the activity to validate"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config: str | None = typer.Option(None, "--config", help="Optional YAML config file"),
) -> None:
    """Validate one activity's dependencies and milestones."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    try:
        thresholds = load_thresholds(config)
        index = load_roadmap(path)
    except (RoadmapLoadError, ConfigError) as e:
        if format == "json":
            _emit_json("validate-activity", False, exit_code=1, errors=[_to_item(e)])
        _print_errors([e])
        raise typer.Exit(code=1)

    activity = index.activities_by_id.get(activity_id)
    if activity is None:
        err = RoadmapError(
            code="E_UNKNOWN_ACTIVITY",
            message=f"activity id not found: {activity_id}",
            file=path,
            path="activity_id",
        )
        if format == "json":
            _emit_json("validate-activity", False, exit_code=2, errors=[_to_item(err)])
        _print_errors([err])
        raise typer.Exit(code=2)

    report = validate_activity(
        activity,
        index.activities_by_id,
        index.milestone_workstreams(),
        thresholds=thresholds,
    )
    _finish("validate-activity", report, format, file=path, subject=f"activity {activity_id}")


@app.command("validate-dependencies")
def validate_dependencies_cmd(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Check milestone dependencies for cycles and deadline conflicts."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    try:
        index = load_roadmap(path)
    except RoadmapLoadError as e:
        if format == "json":
            _emit_json("validate-dependencies", False, exit_code=1, errors=[_to_item(e)])
        _print_errors([e])
        raise typer.Exit(code=1)

    deps = existing_dependencies(index.milestones_by_id)
    report = validate_milestone_dependencies(deps, index.milestones_by_id)
    _finish("validate-dependencies", report, format, file=path, subject=f"{len(deps)} dependencies")


@positions_app.command("list")
def positions_list(
    strategy_id: int = typer.Argument(...),
    node_type: str = typer.Argument(..., help="milestone|workstream"),
    store: str | None = typer.Option(None, "--store", help="Position file (YAML)"),
) -> None:
    """List stored offsets for one strategy and node type."""
    pstore = PositionStore(YamlPositionBackend(positions_file(store)))
    try:
        positions = pstore.get(strategy_id, node_type)  # type: ignore[arg-type]
    except PositionStoreError as e:
        _print_errors([e])
        raise typer.Exit(code=_position_exit_code(e))

    for p in sorted(positions, key=lambda p: p.storage_key):
        suffix = f" (duplicate of {p.original_node_id})" if p.is_duplicate else ""
        typer.echo(f"{p.storage_key}: {p.rel_y:.4f}{suffix}")


@positions_app.command("set")
def positions_set(
    strategy_id: int = typer.Argument(...),
    node_type: str = typer.Argument(..., help="milestone|workstream"),
    node_id: str = typer.Argument(...),
    rel_y: float = typer.Argument(..., help="Vertical offset relative to content height"),
    duplicate_key: str | None = typer.Option(None, "--duplicate-key"),
    original_id: int | None = typer.Option(None, "--original-id"),
    store: str | None = typer.Option(None, "--store", help="Position file (YAML)"),
) -> None:
    """Create or replace one node's offset."""
    pstore = PositionStore(YamlPositionBackend(positions_file(store)))
    try:
        saved = pstore.upsert(
            strategy_id,
            node_type,  # type: ignore[arg-type]
            int(node_id) if node_id.isdigit() else node_id,
            rel_y,
            is_duplicate=duplicate_key is not None,
            duplicate_key=duplicate_key,
            original_node_id=original_id,
        )
    except PositionStoreError as e:
        _print_errors([e])
        raise typer.Exit(code=_position_exit_code(e))

    typer.echo(f"OK: {node_type} {saved.storage_key} -> {saved.rel_y:.4f}")


def _finish(command: str, report: ValidationReport, format: str, *, file: str, subject: str) -> None:
    errors = [
        RoadmapError(code="E_VALIDATION", message=m, file=file, path=command) for m in report.errors
    ]
    if format == "json":
        _emit_json(
            command,
            report.ok,
            exit_code=0 if report.ok else 2,
            errors=[_to_item(e) for e in errors],
            warnings=report.warnings,
            insights=report.insights,
        )

    for w in report.warnings:
        typer.echo(f"WARN: {w}", err=True)
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    for i in report.insights:
        typer.echo(f"INFO: {i}")
    typer.echo(f"OK: {subject} valid")


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _print_errors(
            [
                RoadmapError(
                    code=code,
                    message=f"unknown format: {format} (choose one of: text, json)",
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)


def _to_item(e: RoadmapError) -> dict[str, Any]:
    source = "load" if isinstance(e, (RoadmapLoadError, ConfigError)) else "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(
    command: str,
    ok: bool,
    *,
    exit_code: int,
    errors: list[dict[str, Any]],
    warnings: list[str] | None = None,
    insights: list[str] | None = None,
) -> None:
    payload = {
        "tool": "roadmap",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": errors,
        "warnings": warnings or [],
        "insights": insights or [],
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _position_exit_code(e: PositionStoreError) -> int:
    return 1 if e.code == "E_POSITION_BACKEND" else 2


def _print_errors(errors: list[RoadmapError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="roadmap")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
