"""Pydantic schemas for annotations.

An annotation is one of five shapes, discriminated by its ``type`` tag:
arrow, rectangle, text, freehand and redact. Instances are frozen; edits go
through :meth:`AnnotationBase.with_changes`, which validates a new instance of
the same variant.

Records use camelCase keys (``createdAt``, ``fontSize``) on output, the shape
the screenshot history files are stored in. Input accepts either camelCase or
the snake_case field names.
"""

import enum
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

# Injected providers for identifiers and timestamps
IdFactory = Callable[[], str]
Clock = Callable[[], int]


def new_annotation_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class AnnotationType(str, enum.Enum):
    ARROW = "arrow"
    RECTANGLE = "rectangle"
    TEXT = "text"
    FREEHAND = "freehand"
    REDACT = "redact"


class RedactStyle(str, enum.Enum):
    BLUR = "blur"
    PIXELATE = "pixelate"
    BLACKBOX = "blackbox"


class RedactReason(str, enum.Enum):
    EMAIL = "email"
    PHONE = "phone"
    IP = "ip"
    CREDIT_CARD = "credit_card"
    MANUAL = "manual"


_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class Point(BaseModel):
    """A position in image-pixel space, origin top-left."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class AnnotationBase(BaseModel):
    """Fields shared by every annotation variant."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    color: str = Field(default="#FF0000", pattern=_HEX_COLOR)
    thickness: int = Field(default=3, ge=1, le=8)
    created_at: int = Field(ge=0)

    def with_changes(self, **fields: Any) -> "AnnotationBase":
        """Return a validated copy with *fields* replaced.

        The variant never changes: ``type`` and ``id`` are locked, and
        unknown field names are rejected.
        """
        for locked in ("type", "id"):
            if locked in fields and fields[locked] != getattr(self, locked):
                raise ValueError(f"Annotation field {locked!r} cannot be changed")
        unknown = set(fields) - set(type(self).model_fields)
        if unknown:
            raise ValueError(
                f"Unknown fields for {self.type} annotation: {sorted(unknown)}"
            )
        data = self.model_dump()
        data.update(fields)
        return type(self).model_validate(data)


class ArrowAnnotation(AnnotationBase):
    type: Literal["arrow"] = "arrow"
    start: Point
    end: Point


class RectangleAnnotation(AnnotationBase):
    type: Literal["rectangle"] = "rectangle"
    origin: Point  # top-left corner
    width: float = Field(ge=0)
    height: float = Field(ge=0)


class TextAnnotation(AnnotationBase):
    type: Literal["text"] = "text"
    position: Point
    text: str
    font_size: float = Field(gt=0)


class FreehandAnnotation(AnnotationBase):
    type: Literal["freehand"] = "freehand"
    points: tuple[Point, ...] = Field(min_length=1)

    @property
    def is_renderable(self) -> bool:
        """A stroke needs at least two points to draw a path."""
        return len(self.points) >= 2


class RedactAnnotation(AnnotationBase):
    type: Literal["redact"] = "redact"
    # Redactions are filled regions, not stroked
    thickness: int = Field(default=0, ge=0, le=8)
    origin: Point
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    style: RedactStyle = RedactStyle.BLUR
    reason: RedactReason = RedactReason.MANUAL


Annotation = Annotated[
    Union[
        ArrowAnnotation,
        RectangleAnnotation,
        TextAnnotation,
        FreehandAnnotation,
        RedactAnnotation,
    ],
    Field(discriminator="type"),
]

_annotation_list_adapter: TypeAdapter[list[Annotation]] = TypeAdapter(list[Annotation])


def annotations_to_records(annotations: Iterable[AnnotationBase]) -> list[dict]:
    """Serialize annotations to plain JSON-compatible dicts."""
    return _annotation_list_adapter.dump_python(
        list(annotations), mode="json", by_alias=True
    )


def annotations_from_records(records: Iterable[dict]) -> list[AnnotationBase]:
    """Validate plain dict records back into annotation instances."""
    return _annotation_list_adapter.validate_python(list(records))


def dump_annotations(annotations: Iterable[AnnotationBase]) -> str:
    """Serialize annotations to a JSON array string."""
    return _annotation_list_adapter.dump_json(list(annotations), by_alias=True).decode()


def load_annotations(data: str | bytes) -> list[AnnotationBase]:
    """Parse a JSON array produced by :func:`dump_annotations`."""
    return _annotation_list_adapter.validate_json(data)
