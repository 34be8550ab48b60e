"""Runtime loader for product storage-section rules."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shopcook.receipt.item_categories import ItemCategoryRuleLayers, build_item_category_rule_layers
from shopcook.runtime.paths import get_paths
from shopcook.runtime.rule_files import load_rule_configs


@lru_cache(maxsize=8)
def load_item_category_rule_layers(classifier_paths: tuple[str, ...] | None = None) -> ItemCategoryRuleLayers:
    """Load section rules from runtime-configured files into pure in-memory layers.

    Without explicit paths the packaged defaults are read first and the
    project's config/item_classifier.toml is layered on top of them.
    """
    if classifier_paths is None:
        p = get_paths()
        classifier_files = [p.default_item_classifier_rules, p.item_classifier_rules]
    else:
        classifier_files = [Path(path) for path in classifier_paths]

    return build_item_category_rule_layers(classifier_configs=load_rule_configs(classifier_files))
