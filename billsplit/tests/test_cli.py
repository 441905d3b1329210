"""Tests for the billsplit command-line interface."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from billsplit.application.receipts import scan as scan_workflow
from billsplit.application.receipts.scan import BillScanRequest, BillScanResult
from billsplit.cli import main as unified_cli
from billsplit.cli.receipt import parse_item_arg
from billsplit.domain.bill import Bill
from billsplit.receipt.bill_response import populate_bill

BILL_JSON = {
    "bill": {
        "name": "Pizzeria",
        "amount": 40,
        "items": [{"name": "Margherita", "price": 14}, {"name": "Pepperoni", "price": 16}],
        "tax": 4,
        "tip": 6,
        "fees": 0,
    }
}


@pytest.fixture
def bill_file(tmp_path: Path) -> Path:
    path = tmp_path / "bill.json"
    path.write_text(json.dumps(BILL_JSON))
    return path


def test_split_prints_even_shares(bill_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = unified_cli.main(["split", str(bill_file), "--person", "Ana", "--person", "Ben"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Bill: Pizzeria" in out
    assert "Ana  20.00" in out
    assert "Ben  20.00" in out
    assert "Discrepancy" not in out


def test_split_flags_unassigned_and_discrepancy(bill_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = unified_cli.main(["split", str(bill_file), "--item", "Garlic bread=5", "--tip", "20%"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "UNASSIGNED" in out
    # Items 35, tax 4, tip 7 -> 46 against a declared 40.
    assert "Discrepancy   6.00" in out


def test_split_skips_invalid_item(bill_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = unified_cli.main(["split", str(bill_file), "--item", "Free water=0"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Skipping item 'Free water=0'" in out


def test_split_malformed_file_exits_nonzero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "bad.json"
    path.write_text("not json")

    assert unified_cli.main(["split", str(path)]) == 1
    assert "Could not parse bill" in capsys.readouterr().out


def test_assemble_prints_delimited_text(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "receipt.ocr.json"
    path.write_text(
        json.dumps(
            {
                "image_width": 1000,
                "image_height": 1000,
                "detections": [
                    [[[100, 100], [300, 100], [300, 130], [100, 130]], ["DELI", 0.99]],
                    [[[700, 400], [800, 400], [800, 430], [700, 430]], ["4.50", 0.99]],
                ],
            }
        )
    )

    exit_code = unified_cli.main(["assemble", str(path), "--padding", "0"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "4.50|DELI|"


def test_scan_handoff_and_output(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: list[BillScanRequest] = []

    def fake_run(request: BillScanRequest) -> BillScanResult:
        captured.append(request)
        bill = Bill(participants=set(request.participants))
        populate_bill(bill, json.dumps(BILL_JSON))
        return BillScanResult(status="parsed", bill=bill)

    sentinel_argv = ["sentinel", "keep-this"]
    monkeypatch.setattr(sys, "argv", sentinel_argv)
    monkeypatch.setattr(scan_workflow, "run_bill_scan", fake_run)

    exit_code = unified_cli.main(["scan", str(tmp_path / "r.jpg"), "--person", "Ana", "--model", "tiny"])

    assert exit_code == 0
    assert sys.argv == sentinel_argv
    assert captured[0].llm_model == "tiny"
    assert [participant.name for participant in captured[0].participants] == ["Ana"]
    assert "Ana  40.00" in capsys.readouterr().out


def test_scan_missing_file_exit_code(tmp_path: Path) -> None:
    assert unified_cli.main(["scan", str(tmp_path / "missing.jpg")]) == 1


def test_no_command_prints_help() -> None:
    assert unified_cli.main([]) == 1


def test_parse_item_arg() -> None:
    item = parse_item_arg("Fish = chips=8.25")
    assert item.name == "Fish = chips"
    assert str(item.price) == "8.25"
    with pytest.raises(ValueError):
        parse_item_arg("no price")
    with pytest.raises(ValueError):
        parse_item_arg("Soda=cheap")


@pytest.mark.parametrize("raw", ["Refund=-5", "X=Infinity", "X=-Infinity", "X=NaN", "X=sNaN"])
def test_parse_item_arg_rejects_negative_and_non_finite(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_item_arg(raw)


def test_split_skips_non_finite_item(bill_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = unified_cli.main(["split", str(bill_file), "--person", "Ana", "--item", "X=Infinity"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Skipping item 'X=Infinity'" in out
    assert "Ana  40.00" in out


def test_serve_uses_shared_default_port(monkeypatch: pytest.MonkeyPatch) -> None:
    import uvicorn
    from billsplit.runtime import receipt_server
    from billsplit.runtime.settings import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT

    calls: list[tuple[str, int]] = []
    monkeypatch.setattr(uvicorn, "run", lambda app, host, port: calls.append((host, port)))

    assert unified_cli.main(["serve"]) == 0
    assert calls == [(DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT)]
    assert "port=DEFAULT_SERVER_PORT" in Path(receipt_server.__file__).read_text()
