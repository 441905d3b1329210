#!/usr/bin/env python3

import argparse
from collections.abc import Callable, Sequence

from billsplit.domain.bill import TIP_PRESETS
from billsplit.receipt.ocr_helpers import OCR_IMAGE_PADDING
from billsplit.runtime import get_settings
from billsplit.runtime.settings import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Normalize command handlers that call sys.exit().

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="billsplit",
        description="Scan receipts and split bills",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  scan <image> [--person NAME ...]   Scan a receipt image into a bill
  assemble <ocr-json>                Show text assembled from saved OCR output
  split <bill-json> [--person ...]   Split a bill JSON across people
  serve [--host] [--port]            Start the bill server

Environment:
  BILLSPLIT_OCR_URL, BILLSPLIT_LLM_URL, BILLSPLIT_LLM_MODEL,
  BILLSPLIT_HTTP_TIMEOUT, BILLSPLIT_OCR_JSON_DIR, BILLSPLIT_LOG_LEVEL
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Scan a receipt image into a bill")
    scan_parser.add_argument("image", help="Path to receipt image")
    scan_parser.add_argument("--ocr-url", default=None, help=f"OCR service URL (default: {settings.ocr_url})")
    scan_parser.add_argument("--llm-url", default=None, help=f"Bill parser URL (default: {settings.llm_url})")
    scan_parser.add_argument("--model", default=None, help=f"Bill parser model (default: {settings.llm_model})")
    scan_parser.add_argument("--person", action="append", help="Person sharing every item (repeatable)")
    scan_parser.add_argument("--save-ocr", action="store_true", help="Save raw OCR JSON for debugging")

    # assemble command
    assemble_parser = subparsers.add_parser("assemble", help="Show text assembled from saved OCR output")
    assemble_parser.add_argument("ocr_json", help="Raw OCR service JSON file")
    assemble_parser.add_argument(
        "--padding", type=int, default=OCR_IMAGE_PADDING, help=f"Padding added before OCR (default: {OCR_IMAGE_PADDING})"
    )
    assemble_parser.add_argument("--lines", action="store_true", help="Print merged lines with positions")

    # split command
    split_parser = subparsers.add_parser("split", help="Split a bill JSON across people")
    split_parser.add_argument("bill_json", help="Bill in the parser's JSON schema")
    split_parser.add_argument("--person", action="append", help="Person sharing every item (repeatable)")
    split_parser.add_argument("--item", action="append", help="Extra item as NAME=PRICE (repeatable)")
    split_parser.add_argument("--tip", choices=sorted(TIP_PRESETS), default=None, help="Set tip from item total")
    split_parser.add_argument("--sync-total", action="store_true", help="Set declared amount to the item total")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the bill server")
    serve_parser.add_argument(
        "--host", default=DEFAULT_SERVER_HOST, help=f"Host to bind to (default: {DEFAULT_SERVER_HOST})"
    )
    serve_parser.add_argument(
        "--port", type=int, default=DEFAULT_SERVER_PORT, help=f"Port to bind to (default: {DEFAULT_SERVER_PORT})"
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "scan":
        from billsplit.cli.receipt import cmd_scan

        return _run_command(cmd_scan, args)
    elif args.command == "assemble":
        from billsplit.cli.receipt import cmd_assemble

        return _run_command(cmd_assemble, args)
    elif args.command == "split":
        from billsplit.cli.receipt import cmd_split

        return _run_command(cmd_split, args)
    elif args.command == "serve":
        from billsplit.cli.receipt import cmd_serve

        return _run_command(cmd_serve, args)

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
