"""Runtime infrastructure for shopcook.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Cached rule loaders for store profiles, OCR corrections and section rules
- Pipeline construction via build_receipt_pipeline()

Usage:
    from shopcook.runtime import build_receipt_pipeline, get_logger

    logger = get_logger(__name__)
    outcome = build_receipt_pipeline().parse(text)
"""

from shopcook.runtime.item_category_rules import load_item_category_rule_layers
from shopcook.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from shopcook.runtime.ocr_correction_rules import load_ocr_corrections
from shopcook.runtime.paths import ProjectPaths, get_paths, reset_paths
from shopcook.runtime.pipeline import build_receipt_pipeline
from shopcook.runtime.store_profile_rules import load_store_profiles

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Rules
    "load_item_category_rule_layers",
    "load_ocr_corrections",
    "load_store_profiles",
    # Pipeline
    "build_receipt_pipeline",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
]
