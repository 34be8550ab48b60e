"""Multi-factor store detection.

Every profile is scored independently on three factors:

- name: identification tokens (including OCR variants) found as whole
  words; weak tokens such as NETTO only count in the header lines
- structure: profile-specific line signatures (article numbers, barcodes...)
- footer: total/footer keywords within the last lines of the receipt

and the weighted sum decides. Scoring a profile never depends on another
profile, so evaluation order cannot change the outcome; ties go to the
profile declared first.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from shopcook.domain.receipt import StoreMatch
from shopcook.receipt.item_categories import _keyword_matches
from shopcook.receipt.ocr_parser.common import PRICE_TOKEN_PATTERN
from shopcook.receipt.store_profiles import StoreProfile

logger = logging.getLogger(__name__)

NAME_WEIGHT = 0.5
STRUCTURE_WEIGHT = 0.3
FOOTER_WEIGHT = 0.2

MATCH_THRESHOLD = 0.3
FOOTER_WINDOW = 15
HEADER_WINDOW = 8


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _header_lines(lines: Sequence[str]) -> list[str]:
    """Lines above the first price-bearing line, at most HEADER_WINDOW."""
    header = []
    for line in lines[:HEADER_WINDOW]:
        if PRICE_TOKEN_PATTERN.search(line):
            break
        header.append(line)
    return header


def _name_factor(profile: StoreProfile, lines: Sequence[str]) -> float:
    """1.0 for two or more distinct tokens, 0.7 for one, 0.0 for none."""
    text_upper = "\n".join(lines).upper()
    header_upper = "\n".join(_header_lines(lines)).upper()
    found = set()
    for token in profile.name_tokens:
        haystack = header_upper if token in profile.header_only_tokens else text_upper
        if _keyword_matches(token, haystack, whole_word=True):
            found.add(token)
    if len(found) >= 2:
        return 1.0
    if len(found) == 1:
        return 0.7
    return 0.0


def _structure_factor(profile: StoreProfile, lines: Sequence[str]) -> float:
    return max((signal.score(lines) for signal in profile.structure), default=0.0)


def _footer_factor(profile: StoreProfile, lines: Sequence[str]) -> float:
    footer_text = "\n".join(lines[-FOOTER_WINDOW:])
    score = sum(signal.score for signal in profile.footer if signal.pattern.search(footer_text))
    return min(score, 1.0)


def score_store(profile: StoreProfile, text: str) -> StoreMatch:
    """Score one profile against normalized receipt text."""
    lines = _split_lines(text)
    factors = {
        "name": _name_factor(profile, lines),
        "structure": _structure_factor(profile, lines),
        "footer": _footer_factor(profile, lines),
    }
    confidence = (
        NAME_WEIGHT * factors["name"] + STRUCTURE_WEIGHT * factors["structure"] + FOOTER_WEIGHT * factors["footer"]
    )
    return StoreMatch(
        store_id=profile.id,
        display_name=profile.display_name,
        confidence=min(max(confidence, 0.0), 1.0),
        factors=factors,
    )


def score_stores(text: str, profiles: Sequence[StoreProfile]) -> list[StoreMatch]:
    """Score every profile, in declaration order."""
    return [score_store(profile, text) for profile in profiles]


def detect_store(
    text: str,
    profiles: Sequence[StoreProfile],
    threshold: float = MATCH_THRESHOLD,
) -> StoreMatch | None:
    """Return the best-scoring profile, or None below the threshold.

    Ties keep the earlier profile.
    """
    best: StoreMatch | None = None
    for match in score_stores(text, profiles):
        logger.debug(
            "Store %s: %.2f (name %.2f, structure %.2f, footer %.2f)",
            match.store_id,
            match.confidence,
            match.factors["name"],
            match.factors["structure"],
            match.factors["footer"],
        )
        if best is None or match.confidence > best.confidence:
            best = match

    if best is None or best.confidence < threshold:
        logger.debug("No store above threshold %.2f", threshold)
        return None
    return best
