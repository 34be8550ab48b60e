"""Store profiles: declarative description of one chain's receipt layout.

Profiles are plain data (see shopcook/receipt/rules/store_profiles.toml).
This module validates raw TOML mappings and compiles them into immutable
StoreProfile objects. Adding a chain means adding a profile entry; the
detector and parsers never special-case a store.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

PriceLocation = Literal["same_line", "next_line", "column"]
PRICE_LOCATIONS: tuple[PriceLocation, ...] = ("same_line", "next_line", "column")

DEFAULT_PRICE_PATTERN = r"^(?P<price>\d{1,4}[,.]\d{2})\s*(?:EUR|€)?\s*[AB*]?$"
DEFAULT_PRODUCT_PATTERN = r"^(?P<name>.*?[^\W\d_].*?)\s+(?P<price>\d{1,4}[,.]\d{2})\s*[AB*]?$"
DEFAULT_DATE_FORMATS = ("%d.%m.%Y %H:%M", "%d.%m.%y %H:%M", "%d.%m.%Y", "%d/%m/%Y", "%d/%m/%y")


class StoreProfileError(ValueError):
    """Raised when a store profile configuration is malformed."""


@dataclass(frozen=True)
class StructureSignal:
    """Count lines matching `pattern`; map the count to a score via tiers.

    Tiers are (min_count, score) pairs checked from the highest min_count
    down. If any line matches `veto_pattern`, the score is capped at
    `veto_cap`.
    """

    pattern: re.Pattern[str]
    tiers: tuple[tuple[int, float], ...]
    veto_pattern: re.Pattern[str] | None = None
    veto_cap: float = 0.0

    def score(self, lines: Sequence[str]) -> float:
        count = sum(1 for line in lines if self.pattern.search(line))
        value = 0.0
        for min_count, tier_score in self.tiers:
            if count >= min_count:
                value = tier_score
                break
        if self.veto_pattern is not None and any(self.veto_pattern.search(line) for line in lines):
            value = min(value, self.veto_cap)
        return value


@dataclass(frozen=True)
class FooterSignal:
    """Footer keyword pattern and the score it contributes when present."""

    pattern: re.Pattern[str]
    score: float


@dataclass(frozen=True)
class StoreProfile:
    """Immutable layout description of one retail chain."""

    id: str
    display_name: str
    name_tokens: tuple[str, ...]
    header_only_tokens: tuple[str, ...]
    price_location: PriceLocation
    product_pattern: re.Pattern[str]
    price_pattern: re.Pattern[str]
    start_patterns: tuple[re.Pattern[str], ...]
    end_keywords: tuple[str, ...]
    has_article_numbers: bool = False
    article_pattern: re.Pattern[str] | None = None
    quantity_pattern: re.Pattern[str] | None = None
    header_keywords: tuple[str, ...] = ()
    ignore_keywords: tuple[str, ...] = ()
    total_keywords: tuple[str, ...] = ()
    total_exclude_keywords: tuple[str, ...] = ()
    name_prefixes: tuple[str, ...] = ()
    date_formats: tuple[str, ...] = DEFAULT_DATE_FORMATS
    structure: tuple[StructureSignal, ...] = ()
    footer: tuple[FooterSignal, ...] = ()


def _compile(profile_id: str, field_name: str, raw: Any, flags: int = 0) -> re.Pattern[str]:
    if not isinstance(raw, str) or not raw:
        raise StoreProfileError(f"Store profile {profile_id!r}: {field_name} must be a non-empty regex string")
    try:
        return re.compile(raw, flags)
    except re.error as exc:
        raise StoreProfileError(f"Store profile {profile_id!r}: invalid regex in {field_name}: {exc}") from exc


def _string_list(profile_id: str, field_name: str, raw: Any, *, upper: bool = True) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise StoreProfileError(f"Store profile {profile_id!r}: {field_name} must be a list of strings")
    values = []
    for value in raw:
        text = str(value).strip()
        if text:
            values.append(text.upper() if upper else text)
    return tuple(values)


def _score(profile_id: str, field_name: str, raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise StoreProfileError(f"Store profile {profile_id!r}: {field_name} must be a number") from exc
    if not 0.0 <= value <= 1.0:
        raise StoreProfileError(f"Store profile {profile_id!r}: {field_name} must be within [0, 1]")
    return value


def _build_structure(profile_id: str, raw: Any) -> tuple[StructureSignal, ...]:
    signals = []
    for idx, entry in enumerate(raw or []):
        if not isinstance(entry, Mapping):
            raise StoreProfileError(f"Store profile {profile_id!r}: structure[{idx}] must be a table")
        tiers = []
        for tier in entry.get("tiers", []):
            if not isinstance(tier, list) or len(tier) != 2:
                raise StoreProfileError(f"Store profile {profile_id!r}: structure[{idx}] tiers are [min_count, score]")
            tiers.append((int(tier[0]), _score(profile_id, f"structure[{idx}] tier score", tier[1])))
        if not tiers:
            raise StoreProfileError(f"Store profile {profile_id!r}: structure[{idx}] needs at least one tier")
        tiers.sort(key=lambda tier: tier[0], reverse=True)

        veto = entry.get("veto_pattern")
        signals.append(
            StructureSignal(
                pattern=_compile(profile_id, f"structure[{idx}].pattern", entry.get("pattern")),
                tiers=tuple(tiers),
                veto_pattern=_compile(profile_id, f"structure[{idx}].veto_pattern", veto) if veto else None,
                veto_cap=_score(profile_id, f"structure[{idx}].veto_cap", entry.get("veto_cap", 0.0)),
            )
        )
    return tuple(signals)


def _build_footer(profile_id: str, raw: Any) -> tuple[FooterSignal, ...]:
    signals = []
    for idx, entry in enumerate(raw or []):
        if not isinstance(entry, Mapping):
            raise StoreProfileError(f"Store profile {profile_id!r}: footer[{idx}] must be a table")
        signals.append(
            FooterSignal(
                pattern=_compile(profile_id, f"footer[{idx}].pattern", entry.get("pattern"), re.IGNORECASE),
                score=_score(profile_id, f"footer[{idx}].score", entry.get("score")),
            )
        )
    return tuple(signals)


def build_store_profile(raw: Mapping[str, Any]) -> StoreProfile:
    """Validate and compile one raw profile mapping."""
    profile_id = str(raw.get("id") or "").strip()
    if not profile_id:
        raise StoreProfileError("Store profile without an id")
    display_name = str(raw.get("display_name") or "").strip()
    if not display_name:
        raise StoreProfileError(f"Store profile {profile_id!r}: display_name is required")

    price_location = str(raw.get("price_location") or "").strip().replace("-", "_")
    if price_location not in PRICE_LOCATIONS:
        raise StoreProfileError(
            f"Store profile {profile_id!r}: price_location must be one of {', '.join(PRICE_LOCATIONS)}"
        )

    product_pattern = _compile(profile_id, "product_pattern", raw.get("product_pattern", DEFAULT_PRODUCT_PATTERN))
    missing = {"name", "price"} - set(product_pattern.groupindex)
    if missing:
        raise StoreProfileError(
            f"Store profile {profile_id!r}: product_pattern lacks named group(s) {', '.join(sorted(missing))}"
        )
    price_pattern = _compile(profile_id, "price_pattern", raw.get("price_pattern", DEFAULT_PRICE_PATTERN))
    if "price" not in price_pattern.groupindex:
        raise StoreProfileError(f"Store profile {profile_id!r}: price_pattern lacks named group 'price'")

    quantity_pattern = None
    if raw.get("quantity_pattern"):
        quantity_pattern = _compile(profile_id, "quantity_pattern", raw["quantity_pattern"])
        missing = {"unit", "count"} - set(quantity_pattern.groupindex)
        if missing:
            raise StoreProfileError(
                f"Store profile {profile_id!r}: quantity_pattern lacks named group(s) {', '.join(sorted(missing))}"
            )

    start_raw = raw.get("start_patterns") or []
    if isinstance(start_raw, str):
        start_raw = [start_raw]
    start_patterns = tuple(
        _compile(profile_id, f"start_patterns[{idx}]", pattern) for idx, pattern in enumerate(start_raw)
    )
    if not start_patterns:
        raise StoreProfileError(f"Store profile {profile_id!r}: at least one start pattern is required")

    has_article_numbers = bool(raw.get("has_article_numbers", False))
    article_pattern = None
    if raw.get("article_pattern"):
        article_pattern = _compile(profile_id, "article_pattern", raw["article_pattern"])
    elif has_article_numbers:
        raise StoreProfileError(f"Store profile {profile_id!r}: has_article_numbers requires article_pattern")

    date_formats = _string_list(profile_id, "date_formats", raw.get("date_formats"), upper=False)

    name_tokens = _string_list(profile_id, "name_tokens", raw.get("name_tokens"))
    header_only_tokens = _string_list(profile_id, "header_only_tokens", raw.get("header_only_tokens"))
    unknown = set(header_only_tokens) - set(name_tokens)
    if unknown:
        raise StoreProfileError(
            f"Store profile {profile_id!r}: header_only_tokens not in name_tokens: {', '.join(sorted(unknown))}"
        )

    return StoreProfile(
        id=profile_id,
        display_name=display_name,
        name_tokens=name_tokens,
        header_only_tokens=header_only_tokens,
        price_location=price_location,  # type: ignore[arg-type]
        product_pattern=product_pattern,
        price_pattern=price_pattern,
        start_patterns=start_patterns,
        end_keywords=_string_list(profile_id, "end_keywords", raw.get("end_keywords")),
        has_article_numbers=has_article_numbers,
        article_pattern=article_pattern,
        quantity_pattern=quantity_pattern,
        header_keywords=_string_list(profile_id, "header_keywords", raw.get("header_keywords")),
        ignore_keywords=_string_list(profile_id, "ignore_keywords", raw.get("ignore_keywords")),
        total_keywords=_string_list(profile_id, "total_keywords", raw.get("total_keywords")),
        total_exclude_keywords=_string_list(profile_id, "total_exclude_keywords", raw.get("total_exclude_keywords")),
        name_prefixes=_string_list(profile_id, "name_prefixes", raw.get("name_prefixes"), upper=False),
        date_formats=date_formats or DEFAULT_DATE_FORMATS,
        structure=_build_structure(profile_id, raw.get("structure")),
        footer=_build_footer(profile_id, raw.get("footer")),
    )


def build_store_profiles(configs: Sequence[Mapping[str, Any]] | None = None) -> tuple[StoreProfile, ...]:
    """Merge profile configs in order and compile them.

    A profile whose id already exists replaces the earlier one in place, so
    declaration order (the detector's tie-break) is kept; new ids append.
    """
    merged: dict[str, Mapping[str, Any]] = {}
    for config in configs or ():
        seen_in_config: set[str] = set()
        for raw in config.get("profiles", []):
            if not isinstance(raw, Mapping):
                raise StoreProfileError("Each [[profiles]] entry must be a table")
            profile_id = str(raw.get("id") or "").strip()
            if not profile_id:
                raise StoreProfileError("Store profile without an id")
            if profile_id in seen_in_config:
                raise StoreProfileError(f"Duplicate store profile id {profile_id!r}")
            seen_in_config.add(profile_id)
            merged[profile_id] = raw
    return tuple(build_store_profile(raw) for raw in merged.values())


def profiles_by_id(profiles: Sequence[StoreProfile]) -> dict[str, StoreProfile]:
    return {profile.id: profile for profile in profiles}
