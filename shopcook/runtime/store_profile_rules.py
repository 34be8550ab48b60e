"""Runtime loader for store profiles."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shopcook.receipt.store_profiles import StoreProfile, build_store_profiles
from shopcook.runtime.logging import get_logger
from shopcook.runtime.paths import get_paths
from shopcook.runtime.rule_files import load_rule_configs

logger = get_logger(__name__)


@lru_cache(maxsize=8)
def load_store_profiles(profile_paths: tuple[str, ...] | None = None) -> tuple[StoreProfile, ...]:
    """
    Load and validate store profiles.

    Args:
        profile_paths: Optional TOML paths, lowest priority first. If None,
            the packaged profiles are read, then config/store_profiles.toml.

    Returns:
        Profiles in declaration order.

    Raises:
        StoreProfileError: A profile is malformed.
    """
    if profile_paths is None:
        p = get_paths()
        profile_files = [p.default_store_profiles, p.store_profiles]
    else:
        profile_files = [Path(path) for path in profile_paths]

    profiles = build_store_profiles(load_rule_configs(profile_files))
    logger.debug("Loaded %d store profiles", len(profiles))
    return profiles
