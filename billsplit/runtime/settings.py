"""Service configuration for the receipt pipeline.

All collaborator endpoints are read from the environment once per call to
``get_settings()``. CLI flags and request parameters override these values.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_OCR_URL = "http://localhost:8001"
DEFAULT_LLM_URL = "http://localhost:11434"
DEFAULT_LLM_MODEL = "llama3.1"
DEFAULT_HTTP_TIMEOUT = 60.0
DEFAULT_SERVER_HOST = "0.0.0.0"
DEFAULT_SERVER_PORT = 8080


def _default_ocr_json_dir() -> Path:
    return Path(tempfile.gettempdir()) / "billsplit" / "ocr_json"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ServiceSettings:
    """Endpoints and limits for the OCR and language-model collaborators."""

    ocr_url: str = DEFAULT_OCR_URL
    llm_url: str = DEFAULT_LLM_URL
    llm_model: str = DEFAULT_LLM_MODEL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    ocr_json_dir: Path = field(default_factory=_default_ocr_json_dir)


def get_settings() -> ServiceSettings:
    """Build settings from BILLSPLIT_* environment variables."""
    ocr_json_dir = os.environ.get("BILLSPLIT_OCR_JSON_DIR", "").strip()
    return ServiceSettings(
        ocr_url=os.environ.get("BILLSPLIT_OCR_URL", DEFAULT_OCR_URL).rstrip("/"),
        llm_url=os.environ.get("BILLSPLIT_LLM_URL", DEFAULT_LLM_URL).rstrip("/"),
        llm_model=os.environ.get("BILLSPLIT_LLM_MODEL", DEFAULT_LLM_MODEL),
        http_timeout=_env_float("BILLSPLIT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        ocr_json_dir=Path(ocr_json_dir) if ocr_json_dir else _default_ocr_json_dir(),
    )
