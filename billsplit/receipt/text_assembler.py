"""Turn OCR fragments into the delimited text handed to the bill parser."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from billsplit.runtime import get_logger

from .geometry import GeometricLine, OcrFragment
from .line_merger import merge_lines

logger = get_logger(__name__)

# Merge tolerance as a fraction of image height.
MERGE_THRESHOLD_RATIO = 0.02
LINE_DELIMITER = "|"


@dataclass(frozen=True)
class AssembledText:
    """Intermediate and final output of receipt text assembly."""

    sorted_lines: list[GeometricLine] = field(default_factory=list)
    merged_lines: list[GeometricLine] = field(default_factory=list)
    delimited_text: str = ""

    def __iter__(self) -> Iterator[object]:
        # Allows `sorted_lines, merged_lines, text = assemble_receipt_text(...)`.
        return iter((self.sorted_lines, self.merged_lines, self.delimited_text))

    @property
    def is_empty(self) -> bool:
        return not self.merged_lines


def _round_half_away(value: float) -> int:
    """Round to nearest int, halves away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def merge_threshold_for_height(image_height: int) -> int:
    """Return the merge threshold in pixels for an image of the given height."""
    return _round_half_away(image_height * MERGE_THRESHOLD_RATIO)


def fragment_to_line(fragment: OcrFragment, image_width: int, image_height: int) -> GeometricLine:
    """Project a normalized fragment origin into pixel space."""
    return GeometricLine(
        text=fragment.text,
        vertical_position=_round_half_away(fragment.min_x * image_width),
        horizontal_position=_round_half_away(fragment.min_y * image_height),
    )


def delimit_lines(lines: Sequence[GeometricLine]) -> str:
    """Join line texts with a trailing delimiter after every line."""
    return "".join(f"{line.text}{LINE_DELIMITER}" for line in lines)


def assemble_receipt_text(
    fragments: Sequence[OcrFragment] | None,
    image_width: int,
    image_height: int,
) -> AssembledText:
    """
    Sort, merge, and serialize OCR fragments.

    Fragments are placed in pixel space, sorted by vertical position
    descending (stable for ties), merged with a threshold of 2% of the image
    height, and joined with ``|``. Missing input never raises: an empty
    ``AssembledText`` is returned so the bill parser still gets called with
    predictable input.

    Args:
        fragments: OCR fragments, or None when recognition failed
        image_width: Image width in pixels
        image_height: Image height in pixels

    Returns:
        AssembledText with sorted lines, merged lines and delimited text
    """
    if not fragments:
        logger.info("No OCR fragments to assemble")
        return AssembledText()

    if image_width <= 0 or image_height <= 0:
        logger.warning("Invalid image size %sx%s; skipping text assembly", image_width, image_height)
        return AssembledText()

    lines = [fragment_to_line(fragment, image_width, image_height) for fragment in fragments if fragment.text]
    if not lines:
        logger.info("OCR produced %d fragments but none had text", len(fragments))
        return AssembledText()

    sorted_lines = sorted(lines, key=lambda line: line.vertical_position, reverse=True)
    threshold = merge_threshold_for_height(image_height)
    merged_lines = merge_lines(sorted_lines, threshold)

    logger.debug(
        "Assembled %d fragments into %d lines (threshold=%dpx)",
        len(sorted_lines),
        len(merged_lines),
        threshold,
    )
    return AssembledText(
        sorted_lines=sorted_lines,
        merged_lines=merged_lines,
        delimited_text=delimit_lines(merged_lines),
    )
