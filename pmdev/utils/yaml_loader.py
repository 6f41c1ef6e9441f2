"""YAML IO helpers with newline coercion."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def _coerce_newlines(raw: str) -> str:
    return raw.replace("\r\n", "\n").replace("\r", "\n")


def load_yaml(path: Path) -> Any:
    # Content files are edited on Windows too; normalise before parsing
    raw = _coerce_newlines(path.read_text(encoding="utf-8"))
    return yaml.safe_load(raw)


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Load a YAML document that must be a mapping at the top level."""
    data = load_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        kind = type(data).__name__
        raise ValueError(f"{path.name}: expected a mapping, got {kind}")
    return data
