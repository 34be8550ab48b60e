"""Storage-section rules for receipt line items.

This module maps cleaned product names to a storage section
(fridge / freezer / pantry / unknown). Two tiers:

1. An optional trained model, used when its confidence exceeds
   MODEL_CONFIDENCE_THRESHOLD.
2. Ordered keyword rules: the first rule with a matching keyword wins.
   Deposit/bag rules map to the unknown section; names that match no
   rule default to pantry.

To add new rules:
1. Add a [[rules]] entry to a classifier TOML file
   (shopcook/receipt/rules/default_item_classifier.toml, or the project's
   config/item_classifier.toml which takes priority)
2. Keywords are case-insensitive substrings; keywords of 1-3 characters
   only match whole words
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

from shopcook.domain.receipt import ClassificationResult, StorageSection

logger = logging.getLogger(__name__)

MODEL_CONFIDENCE_THRESHOLD = 0.7
LOW_CONFIDENCE_LOG_THRESHOLD = 0.6

# Fixed confidences reported for rule-based results.
RULE_CONFIDENCE: dict[StorageSection, float] = {
    StorageSection.UNKNOWN: 0.9,
    StorageSection.FRIDGE: 0.85,
    StorageSection.FREEZER: 0.85,
    StorageSection.PANTRY: 0.7,
}

DEFAULT_SECTION = StorageSection.PANTRY

# Built-in rules are intentionally empty; see default_item_classifier.toml.
ITEM_RULES: list[tuple[tuple[str, ...], StorageSection]] = []
WHOLE_WORD_KEYWORDS: set[str] = set()


RuleEntry = tuple[tuple[str, ...], StorageSection, int]


@dataclass(frozen=True)
class ItemCategoryRuleLayers:
    """In-memory section rules, highest priority first."""

    rules: tuple[RuleEntry, ...]
    whole_word_keywords: frozenset[str]
    non_food_keywords: tuple[str, ...]


def _normalize_keywords(raw: Any) -> tuple[str, ...]:
    """Normalize keywords value from TOML into a tuple of upper-case strings."""
    if isinstance(raw, str):
        value = raw.strip().upper()
        return (value,) if value else tuple()
    if isinstance(raw, list):
        values = [str(v).strip().upper() for v in raw if str(v).strip()]
        return tuple(values)
    return tuple()


def build_item_category_rule_layers(
    classifier_configs: Sequence[Mapping[str, Any]] | None = None,
) -> ItemCategoryRuleLayers:
    """Build ordered rules from in-memory configs.

    Later configs form higher-priority layers; inside a layer rules keep
    their declaration order unless an explicit `priority` is given.
    """
    rules: list[tuple[int, int, tuple[str, ...], StorageSection]] = []
    order = 0
    for keywords, section in ITEM_RULES:
        rules.append((0, order, keywords, section))
        order += 1

    whole_word = {kw.upper() for kw in WHOLE_WORD_KEYWORDS}
    non_food: list[str] = []
    for idx, config in enumerate(classifier_configs or (), start=1):
        layer_priority = idx * 100
        for raw_kw in config.get("whole_word_keywords", []):
            kw = str(raw_kw).strip().upper()
            if kw:
                whole_word.add(kw)
        for kw in _normalize_keywords(config.get("non_food_keywords")):
            if kw not in non_food:
                non_food.append(kw)

        for rule in config.get("rules", []):
            if not isinstance(rule, Mapping):
                continue

            keywords = _normalize_keywords(rule.get("keywords"))
            if not keywords:
                continue

            section = StorageSection.from_label(str(rule.get("section") or ""))
            priority = int(rule.get("priority", 0)) + layer_priority
            rules.append((priority, order, keywords, section))
            order += 1

    rules.sort(key=lambda entry: (-entry[0], entry[1]))
    return ItemCategoryRuleLayers(
        rules=tuple((keywords, section, priority) for priority, _, keywords, section in rules),
        whole_word_keywords=frozenset(whole_word),
        non_food_keywords=tuple(non_food),
    )


@lru_cache(maxsize=1)
def _get_default_rule_layers() -> ItemCategoryRuleLayers:
    """Built-in-only default rules (no file I/O, no runtime deps)."""
    return build_item_category_rule_layers()


def _keyword_matches(keyword: str, text_upper: str, whole_word: bool = False) -> bool:
    """Check if keyword appears in an upper-cased text.

    Very short keywords (1-3 chars) only match whole words. This avoids
    false positives like EIS matching in REIS or AIL in DETAIL.
    """
    kw = keyword.upper().strip()
    if not kw:
        return False
    if whole_word or len(kw.replace(" ", "")) <= 3:
        return re.search(r"(?<!\w)" + re.escape(kw) + r"(?!\w)", text_upper) is not None
    return kw in text_upper


def _find_section(
    name: str,
    rules: Sequence[RuleEntry],
    whole_word_keywords: frozenset[str],
) -> tuple[StorageSection, str] | None:
    """Return (section, matched keyword) of the first matching rule."""
    upper = name.upper()
    for keywords, section, _priority in rules:
        for kw in keywords:
            if _keyword_matches(kw, upper, whole_word=kw in whole_word_keywords):
                return section, kw
    return None


def classify_section(
    name: str,
    rule_layers: ItemCategoryRuleLayers | None = None,
) -> ClassificationResult:
    """Classify a product name with keyword rules only.

    Args:
        name: Cleaned product name (e.g., "Bio Vollmilch 3,5%")
        rule_layers: Preloaded in-memory rules (typically from runtime loader).

    Returns:
        ClassificationResult with method "rules". Unmatched names go to pantry.

    When rule_layers is omitted, only built-in rules apply.
    """
    layers = rule_layers or _get_default_rule_layers()
    found = _find_section(name, layers.rules, layers.whole_word_keywords)
    section = found[0] if found else DEFAULT_SECTION
    return ClassificationResult(section=section, confidence=RULE_CONFIDENCE[section], method="rules")


def classify_section_debug(
    name: str,
    rule_layers: ItemCategoryRuleLayers | None = None,
) -> list[tuple[StorageSection, str, int]]:
    """Debug helper listing every rule that matches, in evaluation order.

    Returns:
        List of (section, matched_keyword, priority) tuples
    """
    layers = rule_layers or _get_default_rule_layers()
    upper = name.upper()
    matches = []
    for keywords, section, priority in layers.rules:
        for kw in keywords:
            if _keyword_matches(kw, upper, whole_word=kw in layers.whole_word_keywords):
                matches.append((section, kw, priority))
                break
    return matches


def is_food_item(name: str, rule_layers: ItemCategoryRuleLayers | None = None) -> bool:
    """Return False for cleaning, hygiene and household products."""
    layers = rule_layers or _get_default_rule_layers()
    upper = name.upper()
    return not any(_keyword_matches(kw, upper) for kw in layers.non_food_keywords)


class ProductModel(Protocol):
    """Optional trained classifier consulted before the keyword rules."""

    def predict(self, name: str) -> tuple[str, float] | None:
        """Return (section label, probability) or None when undecided."""
        ...


class ProductClassifier:
    """Model-then-rules product classifier.

    The rule tables are the cold-start default and the safety net whenever
    no model is configured or the model is not confident enough.
    """

    def __init__(
        self,
        rule_layers: ItemCategoryRuleLayers | None = None,
        model: ProductModel | None = None,
        model_threshold: float = MODEL_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.rule_layers = rule_layers or _get_default_rule_layers()
        self.model = model
        self.model_threshold = model_threshold

    def _classify_with_model(self, name: str) -> ClassificationResult | None:
        if self.model is None:
            return None
        try:
            prediction = self.model.predict(name)
        except Exception as exc:
            logger.warning("Model classification failed for %r: %s", name, exc)
            return None
        if prediction is None:
            return None
        label, confidence = prediction
        if confidence <= self.model_threshold:
            return None
        return ClassificationResult(
            section=StorageSection.from_label(label),
            confidence=float(confidence),
            method="model",
        )

    def classify(self, name: str) -> ClassificationResult:
        result = self._classify_with_model(name) or classify_section(name, self.rule_layers)
        if result.confidence < LOW_CONFIDENCE_LOG_THRESHOLD:
            logger.debug(
                "Low confidence classification: %s -> %s (%.0f%%)",
                name,
                result.section.value,
                result.confidence * 100,
            )
        return result

    def is_food(self, name: str) -> bool:
        return is_food_item(name, self.rule_layers)
