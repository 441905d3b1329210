"""Runtime helpers for the receipt scan pipeline (OCR and bill-parser services)."""

import json
import time
from pathlib import Path
from typing import Any

import httpx

from billsplit.receipt.bill_response import BILL_PARSER_INSTRUCTIONS
from billsplit.receipt.geometry import OcrFragment
from billsplit.receipt.ocr_helpers import fragments_from_paddleocr_result, resize_image_bytes
from billsplit.runtime.logging import get_logger
from billsplit.runtime.settings import DEFAULT_HTTP_TIMEOUT

logger = get_logger(__name__)


class OCRServiceUnavailable(RuntimeError):
    """Raised when the OCR service cannot be reached or returns an error."""


class LLMServiceUnavailable(RuntimeError):
    """Raised when the bill-parser model cannot be reached or returns an error."""


def call_ocr_service(
    receipt_path: Path, ocr_url: str, timeout: float = DEFAULT_HTTP_TIMEOUT
) -> tuple[dict[str, Any], list[OcrFragment], int, int]:
    """
    Call the OCR service and return the raw result and normalized fragments.

    Returns:
        Tuple of (raw_result, fragments, image_width, image_height).
    """
    ocr_url = ocr_url.rstrip("/")
    logger.info("Sending receipt to OCR service at %s...", ocr_url)

    try:
        image_bytes = receipt_path.read_bytes()
        resized_bytes = resize_image_bytes(image_bytes)

        start_time = time.time()
        response = httpx.post(
            f"{ocr_url}/ocr",
            files={"file": (receipt_path.name, resized_bytes, "image/jpeg")},
            timeout=timeout,
        )
        elapsed_time = time.time() - start_time
        logger.info("OCR service returned in %.2f seconds", elapsed_time)

        if response.status_code != 200:
            logger.error("OCR service error: %s", response.status_code)
            raise OCRServiceUnavailable(f"OCR service error: {response.status_code}")

        raw_result = response.json()
        if not isinstance(raw_result, dict):
            raise OCRServiceUnavailable(f"OCR service returned unexpected payload: {type(raw_result).__name__}")
        fragments, width, height = fragments_from_paddleocr_result(raw_result)
    except httpx.RequestError as e:
        logger.error("Failed to connect to OCR service: %s", e)
        raise OCRServiceUnavailable(f"Failed to connect to OCR service: {e}") from e
    except OSError as e:
        logger.error("Could not read receipt image: %s", e)
        raise OCRServiceUnavailable(f"Could not read receipt image: {e}") from e
    except ValueError as e:
        logger.error("OCR service returned invalid JSON: %s", e)
        raise OCRServiceUnavailable(f"OCR service returned invalid JSON: {e}") from e

    logger.debug("OCR produced %d fragments for %dx%d image", len(fragments), width, height)
    return raw_result, fragments, width, height


def build_chat_request(prompt: str, model: str) -> dict[str, Any]:
    """Build an OpenAI-compatible chat completion request for the bill parser."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": BILL_PARSER_INSTRUCTIONS},
            {"role": "user", "content": prompt},
        ],
        "temperature": 0,
        "stream": False,
    }


def extract_chat_content(payload: dict[str, Any]) -> str:
    """Return the first choice's message content from a chat completion reply."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise LLMServiceUnavailable(f"Unexpected chat completion payload: {e!r}") from e
    if not isinstance(content, str):
        raise LLMServiceUnavailable("Chat completion content is not text")
    return content


def call_llm_service(prompt: str, llm_url: str, model: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> str:
    """
    Send the delimited receipt text to the bill-parser model.

    Returns:
        The model's raw reply, unparsed.
    """
    llm_url = llm_url.rstrip("/")
    logger.info("Sending %d characters to bill parser at %s (model=%s)", len(prompt), llm_url, model)

    try:
        start_time = time.time()
        response = httpx.post(
            f"{llm_url}/v1/chat/completions",
            json=build_chat_request(prompt, model),
            timeout=timeout,
        )
        logger.info("Bill parser returned in %.2f seconds", time.time() - start_time)

        if response.status_code != 200:
            logger.error("Bill parser error: %s", response.status_code)
            raise LLMServiceUnavailable(f"Bill parser error: {response.status_code}")

        payload = response.json()
    except httpx.RequestError as e:
        logger.error("Failed to connect to bill parser: %s", e)
        raise LLMServiceUnavailable(f"Failed to connect to bill parser: {e}") from e
    except ValueError as e:
        logger.error("Bill parser returned invalid JSON envelope: %s", e)
        raise LLMServiceUnavailable(f"Bill parser returned invalid JSON envelope: {e}") from e

    return extract_chat_content(payload)


def save_ocr_json(ocr_result: dict[str, Any], receipt_path: Path, directory: Path) -> Path:
    """Save OCR result JSON for debugging."""
    directory.mkdir(parents=True, exist_ok=True)
    ocr_json_path = directory / f"{receipt_path.stem}.json"
    ocr_json_path.write_text(json.dumps(ocr_result, indent=2))
    logger.debug("OCR JSON saved to: %s", ocr_json_path)
    return ocr_json_path
