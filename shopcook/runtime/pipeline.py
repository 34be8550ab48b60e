"""Wire the receipt pipeline from configured rule files."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from shopcook.receipt.item_categories import MODEL_CONFIDENCE_THRESHOLD, ProductClassifier, ProductModel
from shopcook.receipt.ocr_result_parser import ReceiptPipeline
from shopcook.receipt.store_detection import MATCH_THRESHOLD
from shopcook.runtime.item_category_rules import load_item_category_rule_layers
from shopcook.runtime.ocr_correction_rules import load_ocr_corrections
from shopcook.runtime.store_profile_rules import load_store_profiles


def build_receipt_pipeline(
    *,
    profile_paths: tuple[str, ...] | None = None,
    correction_paths: tuple[str, ...] | None = None,
    classifier_paths: tuple[str, ...] | None = None,
    model: ProductModel | None = None,
    model_threshold: float = MODEL_CONFIDENCE_THRESHOLD,
    detection_threshold: float = MATCH_THRESHOLD,
    clock: Callable[[], datetime] | None = None,
) -> ReceiptPipeline:
    """
    Build a ReceiptPipeline from rule files.

    Path arguments override the default layering (packaged rules, then the
    project's config/ directory). Malformed store profiles raise
    StoreProfileError here, before any receipt is parsed.
    """
    classifier = ProductClassifier(
        rule_layers=load_item_category_rule_layers(classifier_paths),
        model=model,
        model_threshold=model_threshold,
    )
    return ReceiptPipeline(
        profiles=load_store_profiles(profile_paths),
        classifier=classifier,
        corrections=load_ocr_corrections(correction_paths),
        detection_threshold=detection_threshold,
        clock=clock or datetime.now,
    )
