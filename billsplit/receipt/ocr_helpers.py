"""Pure OCR transformation helpers for receipt scanning."""

import io
from typing import Any

from billsplit.runtime import get_logger

from .geometry import OcrFragment

logger = get_logger(__name__)

MAX_IMAGE_DIMENSION = 3000  # Resize if either dimension exceeds this
OCR_IMAGE_PADDING = 50  # White padding around image to prevent edge truncation
MIN_CONFIDENCE = 0.5


def fit_within(width: int, height: int, max_dimension: int = MAX_IMAGE_DIMENSION) -> tuple[int, int]:
    """Scale (width, height) so the longer side is at most ``max_dimension``."""
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, int(width * scale)), max(1, int(height * scale))


def resize_image_bytes(
    image_bytes: bytes, max_dimension: int = MAX_IMAGE_DIMENSION, padding: int = OCR_IMAGE_PADDING
) -> bytes:
    """
    Prepare a receipt photo for the OCR service.

    The image is turned upright from its EXIF orientation, shrunk to fit
    ``max_dimension`` and given a white border of ``padding`` pixels, which
    ``fragments_from_paddleocr_result`` later subtracts.

    Returns:
        JPEG bytes
    """
    from PIL import Image, ImageOps

    with Image.open(io.BytesIO(image_bytes)) as source:
        img = ImageOps.exif_transpose(source)
        target_size = fit_within(img.width, img.height, max_dimension)
        if target_size != img.size:
            img = img.resize(target_size, Image.Resampling.LANCZOS)
        if padding > 0:
            img = ImageOps.expand(img, border=padding, fill="white")

        buffer = io.BytesIO()
        img.convert("RGB").save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


def _clamp(val: float, min_val: float = 0.0, max_val: float = 1.0) -> float:
    return max(min_val, min(max_val, val))


def fragments_from_paddleocr_result(
    raw_result: Any, padding: int = OCR_IMAGE_PADDING, min_confidence: float = MIN_CONFIDENCE
) -> tuple[list[OcrFragment], int, int]:
    """
    Convert a raw PaddleOCR service result into normalized fragments.

    The service reports pixel polygons for the padded image with a top-left
    origin. Fragments use the unpadded image, normalized to ``[0, 1]``, with a
    bottom-left origin, so ``min_y`` is measured from the bottom edge.

    A result that is not an object gives no fragments. Detections that are not
    a ``[polygon, [text, confidence]]`` pair are skipped.

    Returns:
        Tuple of (fragments, image_width, image_height) for the unpadded image.
    """
    if not isinstance(raw_result, dict):
        logger.warning("Ignoring OCR result of type %s", type(raw_result).__name__)
        return [], 0, 0

    image_width = max(_dimension(raw_result.get("image_width")) - 2 * padding, 0)
    image_height = max(_dimension(raw_result.get("image_height")) - 2 * padding, 0)
    detections = raw_result.get("detections") or []

    if not isinstance(detections, list) or image_width == 0 or image_height == 0:
        return [], image_width, image_height

    fragments: list[OcrFragment] = []
    skipped = 0
    for detection in detections:
        try:
            fragment = _fragment_from_detection(detection, padding, image_width, image_height)
        except (TypeError, ValueError, IndexError) as exc:
            skipped += 1
            logger.debug("Skipping malformed OCR detection %r: %s", detection, exc)
            continue
        if fragment.confidence < min_confidence or not fragment.text.strip():
            continue
        fragments.append(fragment)

    if skipped:
        logger.warning("Skipped %d malformed OCR detections", skipped)
    return fragments, image_width, image_height


def _dimension(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _fragment_from_detection(detection: Any, padding: int, image_width: int, image_height: int) -> OcrFragment:
    bbox, (text, confidence) = detection
    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")

    # bbox is [[x1,y1], [x2,y2], [x3,y3], [x4,y4]] in padded pixel space
    xs = [float(point[0]) - padding for point in bbox]
    ys = [float(point[1]) - padding for point in bbox]

    return OcrFragment(
        text=text,
        min_x=_clamp(min(xs) / image_width),
        min_y=_clamp(1.0 - max(ys) / image_height),
        confidence=float(confidence),
    )
