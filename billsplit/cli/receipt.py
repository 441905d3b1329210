"""Receipt and bill command handlers used by the unified CLI."""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from billsplit.domain.bill import TIP_PRESETS, Bill, InvalidItemEntry, LineItem, Participant
from billsplit.receipt.bill_response import MalformedBillResponse, populate_bill
from billsplit.receipt.formatter import format_bill_summary
from billsplit.receipt.ocr_helpers import fragments_from_paddleocr_result
from billsplit.receipt.text_assembler import assemble_receipt_text
from billsplit.runtime import get_logger

logger = get_logger(__name__)


def _participants_from_args(args: argparse.Namespace) -> list[Participant]:
    return [Participant(name=name) for name in (getattr(args, "person", None) or [])]


def parse_item_arg(raw: str) -> LineItem:
    """Parse a ``NAME=PRICE`` command-line item."""
    name, sep, price = raw.rpartition("=")
    if not sep:
        raise ValueError("expected NAME=PRICE")
    try:
        amount = Decimal(price.strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid price {price!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"price must be a finite, non-negative amount: {price.strip()!r}")
    return LineItem(name=name.strip(), price=amount)


def split_evenly(bill: Bill, participants: list[Participant]) -> None:
    """Add ``participants`` to the bill and put every item on all of them."""
    for participant in participants:
        bill.add_participant(participant)
    if not participants:
        return
    for item in bill.items:
        bill.assign(item, participants)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server for scanning and splitting bills."""
    import uvicorn

    from billsplit.runtime import receipt_server as server

    print(f"Starting bill server on {args.host}:{args.port}")
    print(f"Endpoints: http://{args.host}:{args.port}/bills/scan | /bills/split")
    print("Press Ctrl+C to stop")

    uvicorn.run(server.app, host=args.host, port=args.port)


def cmd_scan(args: argparse.Namespace) -> None:
    """Scan a receipt image into a bill and print the split."""
    from billsplit.application.receipts.scan import BillScanRequest, run_bill_scan

    participants = _participants_from_args(args)
    result = run_bill_scan(
        BillScanRequest(
            image_path=Path(args.image),
            participants=tuple(participants),
            ocr_url=args.ocr_url,
            llm_url=args.llm_url,
            llm_model=args.model,
            save_ocr=args.save_ocr,
        )
    )

    if result.status == "file_not_found":
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        sys.exit(1)

    if result.ocr_error:
        print(f"OCR service unavailable: {result.ocr_error}")
        print("Continuing with no receipt text.")

    if result.status == "llm_unavailable":
        print(f"Bill parser unavailable: {result.error}")
        print(f"Extracted text: {result.bill.extracted_text}")
        sys.exit(1)

    if result.status == "malformed_response":
        print(f"Could not parse bill: {result.error}")
        print("--- Raw response ---")
        print(result.bill.ai_response)
        sys.exit(1)

    split_evenly(result.bill, participants)
    print(format_bill_summary(result.bill))
    if result.ocr_json_path is not None:
        print(f"OCR JSON saved to: {result.ocr_json_path}")


def cmd_assemble(args: argparse.Namespace) -> None:
    """Print the delimited text assembled from a saved OCR JSON file."""
    json_path = Path(args.ocr_json)
    if not json_path.exists():
        print(f"Error: OCR JSON not found: {json_path}")
        sys.exit(1)

    raw_result = json.loads(json_path.read_text())
    fragments, width, height = fragments_from_paddleocr_result(raw_result, padding=args.padding)
    assembled = assemble_receipt_text(fragments, width, height)

    if args.lines:
        for line in assembled.merged_lines:
            print(f"{line.vertical_position:>6} {line.horizontal_position:>6}  {line.text}")
        return
    print(assembled.delimited_text)


def cmd_split(args: argparse.Namespace) -> None:
    """Split a bill saved in the parser's JSON schema across named people."""
    bill_path = Path(args.bill_json)
    if not bill_path.exists():
        print(f"Error: bill JSON not found: {bill_path}")
        sys.exit(1)

    bill = Bill()
    try:
        populate_bill(bill, bill_path.read_text())
    except MalformedBillResponse as exc:
        print(f"Could not parse bill: {exc}")
        sys.exit(1)

    for raw_item in getattr(args, "item", None) or []:
        try:
            bill.add_item(parse_item_arg(raw_item))
        except (ValueError, InvalidItemEntry) as exc:
            print(f"Skipping item {raw_item!r}: {exc}")

    if args.tip is not None:
        bill.apply_tip_percentage(TIP_PRESETS[args.tip])
    if args.sync_total:
        bill.sync_declared_amount()

    split_evenly(bill, _participants_from_args(args))
    print(format_bill_summary(bill))

