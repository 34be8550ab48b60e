"""Runtime loader for OCR correction tables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shopcook.receipt.text_normalization import OcrCorrections, build_ocr_corrections
from shopcook.runtime.paths import get_paths
from shopcook.runtime.rule_files import load_rule_configs


@lru_cache(maxsize=8)
def load_ocr_corrections(correction_paths: tuple[str, ...] | None = None) -> OcrCorrections:
    """Load correction tables; later files win key by key."""
    if correction_paths is None:
        p = get_paths()
        correction_files = [p.default_ocr_corrections, p.ocr_corrections]
    else:
        correction_files = [Path(path) for path in correction_paths]

    return build_ocr_corrections(load_rule_configs(correction_files))
