"""Positioned text values produced by OCR and consumed by line merging."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OcrFragment:
    """One recognized text region, top candidate only.

    Coordinates are the bounding box origin normalized to ``[0, 1]`` with the
    origin at the bottom-left of the image.
    """

    text: str
    min_x: float
    min_y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class GeometricLine:
    """A line of recognized text with its pixel placement.

    ``vertical_position`` is the left edge (pixel X) and is the axis lines are
    grouped on; ``horizontal_position`` is the pixel Y of the box origin.
    """

    text: str
    vertical_position: int
    horizontal_position: int

    def merged_with(self, other: GeometricLine) -> GeometricLine:
        """Return a new line with ``other`` appended to this one."""
        # int() truncates toward zero, matching integer division on non-negative pixels.
        return GeometricLine(
            text=f"{self.text} {other.text}",
            vertical_position=int((self.vertical_position + other.vertical_position) / 2),
            horizontal_position=min(self.horizontal_position, other.horizontal_position),
        )
