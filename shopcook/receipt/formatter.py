"""Render parse outcomes as aligned plain text or JSON-ready dicts."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from shopcook.domain.receipt import LineItem, ParseOutcome, Receipt, ReceiptConfidence, StoreMatch


def _format_receipt_date_for_output(receipt: Receipt) -> tuple[str, bool]:
    """Format receipt date for output, returning (date_str, is_placeholder)."""
    return receipt.date.strftime("%Y-%m-%d %H:%M"), receipt.date_is_placeholder


def _format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01'))} EUR"


def _format_item_lines(items: tuple[LineItem, ...], indent: str = "  ") -> list[str]:
    """
    Format item lines with aligned names, sections and amounts.

    Args:
        items: Line items in receipt order
        indent: Indentation prefix for each line

    Returns:
        List of formatted item lines
    """
    if not items:
        return []

    names = [item.name if item.quantity == 1 else f"{item.name} (x{item.quantity})" for item in items]
    amounts = [_format_amount(item.price) for item in items]
    max_name_len = max(len(name) for name in names)
    max_section_len = max(len(item.section.value) for item in items)
    max_amount_len = max(len(amount) for amount in amounts)

    lines = []
    for item, name, amount in zip(items, names, amounts):
        lines.append(
            f"{indent}{name.ljust(max_name_len)}  {item.section.value.ljust(max_section_len)}  "
            f"{amount.rjust(max_amount_len)}"
        )
    return lines


def format_receipt(receipt: Receipt, confidence: ReceiptConfidence | None = None) -> str:
    """Format a receipt (and optionally its confidence) for the terminal."""
    date_str, is_placeholder = _format_receipt_date_for_output(receipt)
    lines = [
        f"Store: {receipt.store_name}",
        f"Date:  {date_str}" + ("  ; not found on receipt" if is_placeholder else ""),
        f"Total: {_format_amount(receipt.total)}" + ("  ; sum of items" if receipt.total_is_computed else ""),
        f"Items: {len(receipt.items)}",
    ]
    lines.extend(_format_item_lines(receipt.items))
    if confidence is not None:
        lines.append("")
        lines.extend(format_confidence(confidence))
    return "\n".join(lines)


def format_confidence(confidence: ReceiptConfidence) -> list[str]:
    lines = [f"Confidence: {confidence.score * 100:.1f}% ({confidence.rating})"]
    for name, value in confidence.factors.items():
        lines.append(f"  {name}: {value:.2f}")
    for issue in confidence.issues:
        lines.append(f"; WARN {issue}")
    return lines


def format_outcome(outcome: ParseOutcome) -> str:
    """Plain-text summary of a pipeline result, failures included."""
    if outcome.receipt is None:
        steps = " -> ".join(outcome.trace)
        return f"Failed: {outcome.failure} (states: {steps})"
    return format_receipt(outcome.receipt, outcome.confidence)


def format_store_scores(matches: list[StoreMatch]) -> str:
    """Detector scores as an aligned table, highest first."""
    if not matches:
        return ""
    ordered = sorted(matches, key=lambda match: match.confidence, reverse=True)
    width = max(len(match.store_id) for match in ordered)
    lines = []
    for match in ordered:
        factors = "  ".join(f"{name}={value:.2f}" for name, value in match.factors.items())
        lines.append(f"{match.store_id.ljust(width)}  {match.confidence:.2f}  {factors}")
    return "\n".join(lines)


def item_to_dict(item: LineItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "price": str(item.price),
        "quantity": item.quantity,
        "section": item.section.value,
        "raw_line": item.raw_line,
    }


def outcome_to_dict(outcome: ParseOutcome) -> dict[str, Any]:
    """JSON-ready representation of a ParseOutcome (amounts as strings)."""
    data: dict[str, Any] = {
        "status": outcome.status,
        "failure": outcome.failure,
        "used_fallback": outcome.used_fallback,
        "attempts": list(outcome.attempts),
        "trace": list(outcome.trace),
        "store_match": None,
        "receipt": None,
        "confidence": None,
    }
    if outcome.store_match is not None:
        data["store_match"] = {
            "store_id": outcome.store_match.store_id,
            "display_name": outcome.store_match.display_name,
            "confidence": outcome.store_match.confidence,
            "factors": dict(outcome.store_match.factors),
        }
    if outcome.receipt is not None:
        receipt = outcome.receipt
        data["receipt"] = {
            "id": receipt.id,
            "store_name": receipt.store_name,
            "store_id": receipt.store_id,
            "date": receipt.date.isoformat(),
            "date_is_placeholder": receipt.date_is_placeholder,
            "total": str(receipt.total),
            "total_is_computed": receipt.total_is_computed,
            "items": [item_to_dict(item) for item in receipt.items],
        }
    if outcome.confidence is not None:
        data["confidence"] = {
            "score": round(outcome.confidence.score, 4),
            "rating": outcome.confidence.rating,
            "factors": dict(outcome.confidence.factors),
            "issues": list(outcome.confidence.issues),
        }
    return data
