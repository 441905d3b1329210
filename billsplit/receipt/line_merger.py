"""Greedy single-pass merging of OCR lines that share a column position."""

from __future__ import annotations

from collections.abc import Sequence

from billsplit.runtime import get_logger

from .geometry import GeometricLine

logger = get_logger(__name__)


def merge_lines(lines: Sequence[GeometricLine], threshold: int) -> list[GeometricLine]:
    """
    Merge adjacent lines whose vertical positions are within ``threshold``.

    ``lines`` must already be sorted by ``vertical_position`` descending; this
    function does not sort. Each line is compared against the running merged
    line, not the original first fragment, so a chain of small steps can merge
    fragments whose total spread exceeds the threshold.

    Args:
        lines: Lines sorted by vertical position, descending
        threshold: Maximum absolute position difference that still merges

    Returns:
        Merged lines in input order; texts are joined with a single space
    """
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")
    if not lines:
        return []

    merged: list[GeometricLine] = []
    current = lines[0]

    for next_line in lines[1:]:
        delta = abs(current.vertical_position - next_line.vertical_position)
        if delta <= threshold:
            current = current.merged_with(next_line)
        else:
            merged.append(current)
            current = next_line
    merged.append(current)

    logger.debug("Merged %d lines into %d (threshold=%d)", len(lines), len(merged), threshold)
    return merged
