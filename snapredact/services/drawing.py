"""Drawing gestures — pointer down/move/up to finalized annotations.

A :class:`DrawingSession` holds at most one draft shape. ``begin`` starts it
at the pointer, ``move`` follows the pointer, ``finish`` returns the
finalized annotation (or ``None`` when the gesture produced nothing usable)
and ``cancel`` drops the draft. Text is not a drag gesture; it is created
directly with :meth:`DrawingSession.create_text`.
"""

import enum
import logging
import math

from snapredact.config import get_settings
from snapredact.schemas.annotation import (
    AnnotationBase,
    ArrowAnnotation,
    Clock,
    FreehandAnnotation,
    IdFactory,
    Point,
    RectangleAnnotation,
    RedactStyle,
    TextAnnotation,
    new_annotation_id,
    now_ms,
)
from snapredact.services.geometry import rect_from_points
from snapredact.services.redaction import manual_redaction

logger = logging.getLogger("snapredact.drawing")


class DrawingTool(str, enum.Enum):
    ARROW = "arrow"
    RECTANGLE = "rectangle"
    TEXT = "text"
    FREEHAND = "freehand"
    REDACT = "redact"


class DrawingSession:
    """Tracks the shape currently being drawn on one image."""

    def __init__(
        self,
        color: str | None = None,
        thickness: int | None = None,
        redact_style: RedactStyle | None = None,
        *,
        id_factory: IdFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        settings = get_settings()
        self.color = color or settings.default_annotation_color
        self.thickness = thickness if thickness is not None else settings.default_thickness
        self.redact_style = redact_style or settings.default_redaction_style
        self._font_size = settings.default_text_font_size
        self._min_distance = settings.freehand_min_distance
        self._new_id = id_factory or new_annotation_id
        self._now = clock or now_ms

        self._tool: DrawingTool | None = None
        self._start: Point | None = None
        self._current: Point | None = None
        self._points: list[Point] = []

    @property
    def is_drawing(self) -> bool:
        return self._tool is not None

    @property
    def tool(self) -> DrawingTool | None:
        return self._tool

    @property
    def draft_points(self) -> tuple[Point, ...]:
        """Points captured so far for a freehand draft."""
        return tuple(self._points)

    def begin(self, tool: DrawingTool, point: Point) -> None:
        if tool == DrawingTool.TEXT:
            raise ValueError("Text is not drawn with a drag; use create_text()")
        self._tool = tool
        self._start = point
        self._current = point
        self._points = [point]

    def move(self, point: Point) -> None:
        if self._tool is None:
            return
        self._current = point
        if self._tool == DrawingTool.FREEHAND:
            last = self._points[-1]
            if math.hypot(point.x - last.x, point.y - last.y) > self._min_distance:
                self._points.append(point)

    def cancel(self) -> None:
        self._tool = None
        self._start = None
        self._current = None
        self._points = []

    def finish(self) -> AnnotationBase | None:
        """Finalize the draft into an annotation and reset the session."""
        if self._tool is None or self._start is None or self._current is None:
            return None

        tool, start, end, points = self._tool, self._start, self._current, self._points
        self.cancel()

        if tool == DrawingTool.REDACT:
            return manual_redaction(
                start,
                end.x - start.x,
                end.y - start.y,
                self.redact_style,
                color=self.color,
                id_factory=self._new_id,
                clock=self._now,
            )

        common = {
            "id": self._new_id(),
            "color": self.color,
            "created_at": self._now(),
        }

        if tool == DrawingTool.ARROW:
            return ArrowAnnotation(**common, thickness=self.thickness, start=start, end=end)

        if tool == DrawingTool.FREEHAND:
            if len(points) < 2:
                logger.debug("Discarding freehand stroke with %d point(s)", len(points))
                return None
            return FreehandAnnotation(**common, thickness=self.thickness, points=tuple(points))

        rect = rect_from_points(start, end)
        return RectangleAnnotation(
            **common,
            thickness=self.thickness,
            origin=rect.origin,
            width=rect.width,
            height=rect.height,
        )

    def create_text(
        self,
        position: Point,
        text: str,
        font_size: float | None = None,
    ) -> TextAnnotation | None:
        """Create a text annotation, or ``None`` when *text* is blank."""
        if not text.strip():
            return None
        return TextAnnotation(
            id=self._new_id(),
            color=self.color,
            thickness=self.thickness,
            created_at=self._now(),
            position=position,
            text=text,
            font_size=font_size or self._font_size,
        )
