"""Rectangle and arrow geometry in image-pixel space."""

import math
from dataclasses import dataclass

from snapredact.schemas.annotation import Point

ARROWHEAD_SIZE: float = 12.0
# Half-angle between the shaft and each arrowhead wing
_ARROWHEAD_SPREAD: float = math.pi / 6


@dataclass(frozen=True)
class NormalizedRect:
    """A rectangle with a top-left origin and non-negative size."""
    origin: Point
    width: float
    height: float


def normalize_rect_bounds(origin: Point, width: float, height: float) -> NormalizedRect:
    """Move the origin to the top-left corner and make the size non-negative.

    Drag gestures produce negative widths/heights when the pointer moves up
    or left of where it started. The occupied area is unchanged.
    """
    return NormalizedRect(
        origin=Point(
            x=origin.x + width if width < 0 else origin.x,
            y=origin.y + height if height < 0 else origin.y,
        ),
        width=abs(width),
        height=abs(height),
    )


def rect_from_points(start: Point, end: Point) -> NormalizedRect:
    """Normalized rectangle spanned by a drag from *start* to *end*."""
    return normalize_rect_bounds(start, end.x - start.x, end.y - start.y)


def arrowhead_points(
    start: Point,
    end: Point,
    size: float = ARROWHEAD_SIZE,
) -> tuple[Point, Point, Point]:
    """Return ``(tip, left_wing, right_wing)`` of the head drawn at *end*."""
    angle = math.atan2(end.y - start.y, end.x - start.x)
    left = Point(
        x=end.x - size * math.cos(angle - _ARROWHEAD_SPREAD),
        y=end.y - size * math.sin(angle - _ARROWHEAD_SPREAD),
    )
    right = Point(
        x=end.x - size * math.cos(angle + _ARROWHEAD_SPREAD),
        y=end.y - size * math.sin(angle + _ARROWHEAD_SPREAD),
    )
    return end, left, right
