"""Tests for the image -> OCR -> bill parser workflow."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
import pytest
from billsplit.application.receipts import scan as scan_workflow
from billsplit.application.receipts.scan import BillScanRequest, run_bill_scan
from billsplit.domain.bill import Participant
from billsplit.receipt.geometry import OcrFragment
from billsplit.runtime import receipt_pipeline
from billsplit.runtime.receipt_pipeline import LLMServiceUnavailable, OCRServiceUnavailable

BILL_REPLY = json.dumps(
    {
        "bill": {
            "name": "Taqueria",
            "amount": 27.0,
            "items": [{"name": "Burrito", "price": 12.0}, {"name": "Tacos", "price": 11.0}],
            "tax": 2.0,
            "tip": 2.0,
            "fees": 0,
        }
    }
)


@pytest.fixture
def receipt_image(tmp_path: Path) -> Path:
    path = tmp_path / "receipt.jpg"
    path.write_bytes(b"not really a jpeg")
    return path


def _fake_ocr(*_args: Any, **_kwargs: Any) -> tuple[dict[str, Any], list[OcrFragment], int, int]:
    fragments = [
        OcrFragment("TAQUERIA", 0.30, 0.95),
        OcrFragment("12.00", 0.80, 0.60),
        OcrFragment("11.00", 0.801, 0.50),
    ]
    return {"detections": []}, fragments, 1000, 1000


def test_scan_populates_bill_and_trail(monkeypatch: pytest.MonkeyPatch, receipt_image: Path) -> None:
    prompts: list[str] = []

    def fake_llm(prompt: str, llm_url: str, model: str, timeout: float) -> str:
        prompts.append(prompt)
        return f"```json\n{BILL_REPLY}\n```"

    monkeypatch.setattr(scan_workflow, "call_ocr_service", _fake_ocr)
    monkeypatch.setattr(scan_workflow, "call_llm_service", fake_llm)
    alice = Participant(name="Alice")

    result = run_bill_scan(BillScanRequest(image_path=receipt_image, participants=(alice,)))

    assert result.status == "parsed"
    assert prompts == ["11.00 12.00|TAQUERIA|"]
    bill = result.bill
    assert bill.extracted_text == "11.00 12.00|TAQUERIA|"
    assert len(bill.sorted_lines) == 3
    assert len(bill.merged_lines) == 2
    assert bill.name == "Taqueria"
    assert bill.item_total == Decimal("23.0")
    assert bill.participants == {alice}
    assert result.ocr_error is None


def test_scan_continues_with_empty_text_when_ocr_fails(monkeypatch: pytest.MonkeyPatch, receipt_image: Path) -> None:
    def failing_ocr(*_args: Any, **_kwargs: Any) -> Any:
        raise OCRServiceUnavailable("connection refused")

    prompts: list[str] = []

    def fake_llm(prompt: str, *_args: Any, **_kwargs: Any) -> str:
        prompts.append(prompt)
        return '{"bill": {"name": "", "amount": 0, "items": [], "tax": 0, "tip": 0, "fees": 0}}'

    monkeypatch.setattr(scan_workflow, "call_ocr_service", failing_ocr)
    monkeypatch.setattr(scan_workflow, "call_llm_service", fake_llm)

    result = run_bill_scan(BillScanRequest(image_path=receipt_image))

    assert result.status == "parsed"
    assert result.ocr_error == "connection refused"
    assert prompts == [""]
    assert result.bill.items == []
    assert result.bill.merged_lines == []


def test_scan_reports_malformed_response(monkeypatch: pytest.MonkeyPatch, receipt_image: Path) -> None:
    monkeypatch.setattr(scan_workflow, "call_ocr_service", _fake_ocr)
    monkeypatch.setattr(scan_workflow, "call_llm_service", lambda *_args, **_kwargs: "Sorry, I can't help.")

    result = run_bill_scan(BillScanRequest(image_path=receipt_image))

    assert result.status == "malformed_response"
    assert result.error is not None
    assert result.bill.ai_response == "Sorry, I can't help."
    assert result.bill.extracted_text == "11.00 12.00|TAQUERIA|"
    assert result.bill.items == []


def test_scan_reports_unavailable_llm(monkeypatch: pytest.MonkeyPatch, receipt_image: Path) -> None:
    def failing_llm(*_args: Any, **_kwargs: Any) -> str:
        raise LLMServiceUnavailable("timeout")

    monkeypatch.setattr(scan_workflow, "call_ocr_service", _fake_ocr)
    monkeypatch.setattr(scan_workflow, "call_llm_service", failing_llm)

    result = run_bill_scan(BillScanRequest(image_path=receipt_image))

    assert result.status == "llm_unavailable"
    assert result.error == "timeout"
    assert result.bill.extracted_text != ""


def test_scan_missing_file(tmp_path: Path) -> None:
    result = run_bill_scan(BillScanRequest(image_path=tmp_path / "missing.jpg"))

    assert result.status == "file_not_found"
    assert result.error is not None


def test_scan_uses_request_overrides_and_saves_ocr(monkeypatch: pytest.MonkeyPatch, receipt_image: Path) -> None:
    calls: dict[str, Any] = {}

    def fake_ocr(path: Path, ocr_url: str, timeout: float) -> Any:
        calls["ocr_url"] = ocr_url
        return _fake_ocr()

    def fake_llm(prompt: str, llm_url: str, model: str, timeout: float) -> str:
        calls["llm"] = (llm_url, model)
        return BILL_REPLY

    monkeypatch.setattr(scan_workflow, "call_ocr_service", fake_ocr)
    monkeypatch.setattr(scan_workflow, "call_llm_service", fake_llm)

    result = run_bill_scan(
        BillScanRequest(
            image_path=receipt_image,
            ocr_url="http://ocr.test",
            llm_url="http://llm.test",
            llm_model="tiny",
            save_ocr=True,
        )
    )

    assert calls == {"ocr_url": "http://ocr.test", "llm": ("http://llm.test", "tiny")}
    assert result.ocr_json_path is not None
    assert json.loads(result.ocr_json_path.read_text()) == {"detections": []}


EMPTY_BILL_REPLY = '{"bill": {"name": "", "amount": 0, "items": [], "tax": 0, "tip": 0, "fees": 0}}'


def _serve_ocr_payload(monkeypatch: pytest.MonkeyPatch, payload: Any) -> list[str]:
    prompts: list[str] = []

    def fake_llm(prompt: str, *_args: Any, **_kwargs: Any) -> str:
        prompts.append(prompt)
        return EMPTY_BILL_REPLY

    monkeypatch.setattr(receipt_pipeline, "resize_image_bytes", lambda data: data)
    monkeypatch.setattr(httpx, "post", lambda *_args, **_kwargs: httpx.Response(200, json=payload))
    monkeypatch.setattr(scan_workflow, "call_llm_service", fake_llm)
    return prompts


@pytest.mark.parametrize(
    "payload",
    [
        [],
        [[[[60, 60]], ["A", None]]],
        "detections",
    ],
)
def test_scan_reports_non_object_ocr_payload(
    monkeypatch: pytest.MonkeyPatch, receipt_image: Path, payload: Any
) -> None:
    prompts = _serve_ocr_payload(monkeypatch, payload)

    result = run_bill_scan(BillScanRequest(image_path=receipt_image))

    assert result.status == "parsed"
    assert result.ocr_error is not None
    assert prompts == [""]


@pytest.mark.parametrize(
    "detections",
    [
        [["bad"]],
        [[[[160, 160], [260, 160]], ["A", None]]],
        [[[[160, 160]], [None, 0.9]]],
        [[[["x", 160]], ["A", 0.9]]],
        [[[], ["A", 0.9]]],
        [None, 7],
    ],
)
def test_scan_skips_malformed_ocr_detections(
    monkeypatch: pytest.MonkeyPatch, receipt_image: Path, detections: list[Any]
) -> None:
    good = [[[160, 160], [360, 160], [360, 190], [160, 190]], ["TOTAL 9.00", 0.99]]
    prompts = _serve_ocr_payload(
        monkeypatch,
        {"image_width": 1100, "image_height": 1100, "detections": [*detections, good]},
    )

    result = run_bill_scan(BillScanRequest(image_path=receipt_image))

    assert result.status == "parsed"
    assert result.ocr_error is None
    assert prompts == ["TOTAL 9.00|"]
