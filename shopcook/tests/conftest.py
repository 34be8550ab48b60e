"""Shared pytest fixtures for shopcook tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from shopcook.receipt.item_categories import ProductClassifier
from shopcook.receipt.ocr_result_parser import ReceiptPipeline
from shopcook.receipt.store_profiles import StoreProfile
from shopcook.receipt.text_normalization import OcrCorrections
from shopcook.runtime.item_category_rules import load_item_category_rule_layers
from shopcook.runtime.ocr_correction_rules import load_ocr_corrections
from shopcook.runtime.store_profile_rules import load_store_profiles

RULES_DIR = Path(__file__).resolve().parents[1] / "receipt" / "rules"
STORE_PROFILES_TOML = str(RULES_DIR / "store_profiles.toml")
OCR_CORRECTIONS_TOML = str(RULES_DIR / "ocr_corrections.toml")
ITEM_CLASSIFIER_TOML = str(RULES_DIR / "default_item_classifier.toml")

FIXED_NOW = datetime(2026, 3, 14, 12, 0)


@pytest.fixture
def rules_dir() -> Path:
    return RULES_DIR


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def profiles() -> tuple[StoreProfile, ...]:
    return load_store_profiles((STORE_PROFILES_TOML,))


@pytest.fixture
def profile_map(profiles: tuple[StoreProfile, ...]) -> dict[str, StoreProfile]:
    return {profile.id: profile for profile in profiles}


@pytest.fixture
def corrections() -> OcrCorrections:
    return load_ocr_corrections((OCR_CORRECTIONS_TOML,))


@pytest.fixture
def classifier() -> ProductClassifier:
    return ProductClassifier(rule_layers=load_item_category_rule_layers((ITEM_CLASSIFIER_TOML,)))


@pytest.fixture
def pipeline(
    profiles: tuple[StoreProfile, ...],
    classifier: ProductClassifier,
    corrections: OcrCorrections,
) -> ReceiptPipeline:
    return ReceiptPipeline(
        profiles=profiles,
        classifier=classifier,
        corrections=corrections,
        clock=lambda: FIXED_NOW,
    )
