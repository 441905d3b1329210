"""Shared pytest fixtures for billsplit tests."""

from __future__ import annotations

import pytest
from billsplit.domain.bill import Participant


@pytest.fixture
def alice() -> Participant:
    return Participant(name="Alice")


@pytest.fixture
def bob() -> Participant:
    return Participant(name="Bob")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep tests independent of the developer's BILLSPLIT_* environment."""
    for name in (
        "BILLSPLIT_OCR_URL",
        "BILLSPLIT_LLM_URL",
        "BILLSPLIT_LLM_MODEL",
        "BILLSPLIT_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BILLSPLIT_OCR_JSON_DIR", str(tmp_path / "ocr_json"))
