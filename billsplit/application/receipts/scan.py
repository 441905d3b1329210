"""Bill scan workflow orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from billsplit.domain.bill import Bill, Participant
from billsplit.receipt.bill_response import MalformedBillResponse, populate_bill
from billsplit.receipt.geometry import OcrFragment
from billsplit.receipt.text_assembler import assemble_receipt_text
from billsplit.runtime import get_logger, get_settings
from billsplit.runtime.receipt_pipeline import (
    LLMServiceUnavailable,
    OCRServiceUnavailable,
    call_llm_service,
    call_ocr_service,
    save_ocr_json,
)

logger = get_logger(__name__)

ScanStatus = Literal[
    "file_not_found",
    "llm_unavailable",
    "malformed_response",
    "parsed",
]


@dataclass(frozen=True)
class BillScanRequest:
    """Inputs for running the bill scan workflow.

    Unset service fields fall back to ``get_settings()``.
    """

    image_path: Path
    participants: tuple[Participant, ...] = ()
    ocr_url: str | None = None
    llm_url: str | None = None
    llm_model: str | None = None
    save_ocr: bool = False


@dataclass(frozen=True)
class BillScanResult:
    """Outcome from the bill scan workflow."""

    status: ScanStatus
    bill: Bill = field(default_factory=Bill)
    error: str | None = None
    ocr_error: str | None = None
    ocr_json_path: Path | None = None


def run_bill_scan(request: BillScanRequest) -> BillScanResult:
    """Run scan flow: OCR -> assemble text -> bill parser -> populated Bill."""
    if not request.image_path.exists():
        return BillScanResult(
            status="file_not_found",
            error=f"Receipt file not found: {request.image_path}",
        )

    settings = get_settings()
    bill = Bill(participants=set(request.participants))

    fragments: list[OcrFragment] = []
    width = height = 0
    ocr_error: str | None = None
    ocr_json_path: Path | None = None
    try:
        raw_ocr_result, fragments, width, height = call_ocr_service(
            request.image_path,
            request.ocr_url or settings.ocr_url,
            timeout=settings.http_timeout,
        )
    except OCRServiceUnavailable as exc:
        # No fragments is a valid input downstream; keep going with empty text.
        logger.warning("Continuing without OCR text: %s", exc)
        ocr_error = str(exc)
    else:
        if request.save_ocr:
            ocr_json_path = save_ocr_json(raw_ocr_result, request.image_path, settings.ocr_json_dir)

    assembled = assemble_receipt_text(fragments, width, height)
    bill.sorted_lines = assembled.sorted_lines
    bill.merged_lines = assembled.merged_lines
    bill.extracted_text = assembled.delimited_text

    try:
        raw_response = call_llm_service(
            assembled.delimited_text,
            request.llm_url or settings.llm_url,
            request.llm_model or settings.llm_model,
            timeout=settings.http_timeout,
        )
    except LLMServiceUnavailable as exc:
        return BillScanResult(
            status="llm_unavailable",
            bill=bill,
            error=str(exc),
            ocr_error=ocr_error,
            ocr_json_path=ocr_json_path,
        )

    try:
        populate_bill(bill, raw_response)
    except MalformedBillResponse as exc:
        return BillScanResult(
            status="malformed_response",
            bill=bill,
            error=str(exc),
            ocr_error=ocr_error,
            ocr_json_path=ocr_json_path,
        )

    return BillScanResult(
        status="parsed",
        bill=bill,
        ocr_error=ocr_error,
        ocr_json_path=ocr_json_path,
    )
