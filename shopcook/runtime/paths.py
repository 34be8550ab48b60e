"""Centralized path management for shopcook.

Packaged default rules live next to the code; project-level overrides live
under `<root>/config/`. The project root is the current working directory
unless SHOPCOOK_HOME points elsewhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

HOME_ENV_VAR = "SHOPCOOK_HOME"


def _get_project_root() -> Path:
    """Determine the project root directory."""
    home = os.environ.get(HOME_ENV_VAR, "").strip()
    return Path(home).expanduser() if home else Path.cwd()


def _get_package_dir() -> Path:
    # shopcook/runtime/paths.py -> shopcook/
    return Path(__file__).resolve().parent.parent


@dataclass
class ProjectPaths:
    """Container for all project-related paths."""

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        # Ensure root is resolved to absolute path
        self.root = Path(self.root).resolve()

    # --- Packaged defaults ---
    @property
    def package_rules(self) -> Path:
        """Default rule files shipped with the package (shopcook/receipt/rules/)."""
        return _get_package_dir() / "receipt" / "rules"

    @property
    def default_store_profiles(self) -> Path:
        return self.package_rules / "store_profiles.toml"

    @property
    def default_ocr_corrections(self) -> Path:
        return self.package_rules / "ocr_corrections.toml"

    @property
    def default_item_classifier_rules(self) -> Path:
        return self.package_rules / "default_item_classifier.toml"

    # --- Project configuration ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def store_profiles(self) -> Path:
        """Project-level store profile overrides and additions."""
        return self.config / "store_profiles.toml"

    @property
    def ocr_corrections(self) -> Path:
        """Project-level OCR correction tables."""
        return self.config / "ocr_corrections.toml"

    @property
    def item_classifier_rules(self) -> Path:
        """Project-level item classifier rules (user corrections go here)."""
        return self.config / "item_classifier.toml"


# Module-level singleton
_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance.

    Returns:
        The global ProjectPaths instance.
    """
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Forget the cached ProjectPaths (e.g. after SHOPCOOK_HOME changed)."""
    global _paths
    _paths = None
