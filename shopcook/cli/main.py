#!/usr/bin/env python3

import argparse
from collections.abc import Sequence

from shopcook.receipt.store_profiles import StoreProfileError
from shopcook.runtime.ocr_service import DEFAULT_OCR_URL


def _print_error(error: str) -> None:
    for line in error.splitlines():
        print(line)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Supermarket receipt OCR text interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  parse <file|->             Parse OCR text into an itemized receipt
  scan <image>               OCR a receipt image, then parse it
  detect <file|->            Show store detection scores
  classify <name>...         Show the storage section for product names
  profiles                   List configured store profiles

Configuration:
  config/store_profiles.toml, config/ocr_corrections.toml and
  config/item_classifier.toml under the project root ($SHOPCOOK_HOME or
  the current directory) extend the packaged rules.
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse OCR text into an itemized receipt")
    parse_parser.add_argument("source", help="Text file with OCR output, or - for stdin")
    parse_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Scan a receipt image")
    scan_parser.add_argument("image", help="Path to receipt image")
    scan_parser.add_argument(
        "--ocr-url", default=DEFAULT_OCR_URL, help=f"OCR service URL (default: {DEFAULT_OCR_URL})"
    )
    scan_parser.add_argument(
        "--min-confidence", type=float, default=0.0, help="Drop OCR lines below this confidence (default: 0.0)"
    )
    scan_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    # detect command
    detect_parser = subparsers.add_parser("detect", help="Show store detection scores")
    detect_parser.add_argument("source", help="Text file with OCR output, or - for stdin")

    # classify command
    classify_parser = subparsers.add_parser("classify", help="Classify product names")
    classify_parser.add_argument("names", nargs="+", help="Product names")

    subparsers.add_parser("profiles", help="List configured store profiles")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    from shopcook.cli import receipt

    handlers = {
        "parse": receipt.cmd_parse,
        "scan": receipt.cmd_scan,
        "detect": receipt.cmd_detect,
        "classify": receipt.cmd_classify,
        "profiles": receipt.cmd_profiles,
    }
    try:
        return handlers[args.command](args)
    except StoreProfileError as exc:
        _print_error(f"Invalid store profile configuration: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
