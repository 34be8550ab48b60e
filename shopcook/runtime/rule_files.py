"""TOML rule file reading shared by the runtime loaders."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any


def _load_toml(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict; missing files map to empty dict."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    if not path.exists():
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def _layered_files(candidates: Iterable[Path]) -> list[Path]:
    """Drop candidates that resolve to an already listed file, keeping order."""
    seen_paths: set[Path] = set()
    files: list[Path] = []
    for candidate in candidates:
        resolved = candidate.resolve()
        if resolved in seen_paths:
            continue
        seen_paths.add(resolved)
        files.append(candidate)
    return files


def load_rule_configs(paths: Iterable[Path]) -> tuple[dict[str, Any], ...]:
    """Read rule files in priority order (lowest first)."""
    return tuple(_load_toml(path) for path in _layered_files(paths))
