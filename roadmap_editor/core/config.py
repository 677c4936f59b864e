from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from roadmap_editor.core.errors import ConfigError


DEFAULT_POSITIONS_FILE = ".roadmap/positions.yaml"
POSITIONS_FILE_ENV = "ROADMAP_POSITIONS_FILE"


@dataclass(frozen=True)
class ValidatorThresholds:
    # Advisory limits: exceeding them yields warnings, never errors.
    max_prerequisites: int = 5
    max_parallel: int = 8


DEFAULT_THRESHOLDS = ValidatorThresholds()


def load_thresholds_file(path: str | Path) -> dict[str, int]:
    """Load validator threshold overrides from a YAML file.

    Format:
      validator:
        max_prerequisites: 5
        max_parallel: 8
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(code="E_CONFIG_NOT_FOUND", message="config file not found", file=str(p))
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(code="E_CONFIG_PARSE", message=str(e), file=str(p)) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(code="E_CONFIG_INVALID", message="config must be a mapping", file=str(p))

    section: Any = raw.get("validator", {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            code="E_CONFIG_INVALID",
            message="validator must be a mapping",
            file=str(p),
            path="validator",
        )

    out: dict[str, int] = {}
    for k, v in section.items():
        if k not in ("max_prerequisites", "max_parallel"):
            raise ConfigError(
                code="E_CONFIG_UNKNOWN_KEY",
                message=f"unknown validator setting: {k}",
                file=str(p),
                path=f"validator.{k}",
            )
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            raise ConfigError(
                code="E_CONFIG_INVALID",
                message=f"{k} must be a non-negative integer",
                file=str(p),
                path=f"validator.{k}",
            )
        out[k] = v
    return out


def load_thresholds(config_file: str | None) -> ValidatorThresholds:
    if not config_file:
        return DEFAULT_THRESHOLDS
    overrides = load_thresholds_file(config_file)
    return ValidatorThresholds(
        max_prerequisites=overrides.get("max_prerequisites", DEFAULT_THRESHOLDS.max_prerequisites),
        max_parallel=overrides.get("max_parallel", DEFAULT_THRESHOLDS.max_parallel),
    )


def positions_file(explicit: str | None = None) -> Path:
    """Resolution order: explicit path, $ROADMAP_POSITIONS_FILE, default."""

    override = (explicit or os.getenv(POSITIONS_FILE_ENV, "") or "").strip()
    return Path(override or DEFAULT_POSITIONS_FILE)
