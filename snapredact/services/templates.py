"""Annotation templates — resolution-independent preset markups.

A template lists shapes in relative coordinates (fractions of the image
width and height; font size as a fraction of the image height).
:func:`apply_template` scales them to a concrete image.

Public interface:
  - TEMPLATES, get_template(template_id)
  - apply_template(template, image_width, image_height) -> list of annotations
  - stamp_template(store, template, image_width, image_height)
"""

import logging
from dataclasses import dataclass

from snapredact.schemas.annotation import (
    AnnotationBase,
    AnnotationType,
    ArrowAnnotation,
    Clock,
    IdFactory,
    Point,
    RectangleAnnotation,
    TextAnnotation,
    new_annotation_id,
    now_ms,
)
from snapredact.services.annotation_store import AnnotationStore

logger = logging.getLogger("snapredact.templates")

# Font size used when a text entry omits relative_font_size
_DEFAULT_RELATIVE_FONT_SIZE: float = 0.02


class TemplateError(ValueError):
    """Template data cannot be turned into annotations."""


@dataclass(frozen=True)
class TemplateAnnotation:
    """One shape of a template. Position fields are 0.0-1.0 fractions."""
    type: str
    color: str
    thickness: int
    # Arrow
    relative_start_x: float | None = None
    relative_start_y: float | None = None
    relative_end_x: float | None = None
    relative_end_y: float | None = None
    # Rectangle / text origin
    relative_x: float | None = None
    relative_y: float | None = None
    # Rectangle
    relative_width: float | None = None
    relative_height: float | None = None
    # Text
    text: str | None = None
    relative_font_size: float | None = None  # fraction of image height


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    description: str
    annotations: tuple[TemplateAnnotation, ...]


TEMPLATES: tuple[Template, ...] = (
    Template(
        id="error-highlight",
        name="Error Highlight",
        description="Red arrow and rectangle to highlight an error",
        annotations=(
            TemplateAnnotation(
                type="arrow", color="#FF0000", thickness=4,
                relative_start_x=0.2, relative_start_y=0.2,
                relative_end_x=0.5, relative_end_y=0.5,
            ),
            TemplateAnnotation(
                type="rectangle", color="#FF0000", thickness=3,
                relative_x=0.2, relative_y=0.3,
                relative_width=0.6, relative_height=0.4,
            ),
        ),
    ),
    Template(
        id="click-here",
        name="Click Here",
        description='Green box and arrow with "Click here" text',
        annotations=(
            TemplateAnnotation(
                type="rectangle", color="#00C853", thickness=3,
                relative_x=0.25, relative_y=0.25,
                relative_width=0.15, relative_height=0.1,
            ),
            TemplateAnnotation(
                type="arrow", color="#00C853", thickness=4,
                relative_start_x=0.15, relative_start_y=0.15,
                relative_end_x=0.25, relative_end_y=0.25,
            ),
            TemplateAnnotation(
                type="text", color="#00C853", thickness=2,
                relative_x=0.1, relative_y=0.12,
                text="Click here", relative_font_size=0.03,
            ),
        ),
    ),
    Template(
        id="step-by-step",
        name="Step by Step",
        description="Three numbered steps for sequential instructions",
        annotations=tuple(
            shape
            for step, y in (("1", 0.25), ("2", 0.5), ("3", 0.75))
            for shape in (
                TemplateAnnotation(
                    type="text", color="#FF0000", thickness=2,
                    relative_x=0.1, relative_y=y,
                    text=step, relative_font_size=0.05,
                ),
                TemplateAnnotation(
                    type="rectangle", color="#FF0000", thickness=3,
                    relative_x=0.08, relative_y=round(y - 0.03, 2),
                    relative_width=0.06, relative_height=0.08,
                ),
            )
        ),
    ),
)


def get_template(template_id: str) -> Template | None:
    for template in TEMPLATES:
        if template.id == template_id:
            return template
    return None


def _scale(value: float | None, dimension: float) -> float:
    return (value or 0.0) * dimension


def apply_template(
    template: Template,
    image_width: float,
    image_height: float,
    *,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> list[AnnotationBase]:
    """Scale *template* to an image of the given size.

    Every produced annotation gets a fresh id and the current timestamp.

    Raises:
        TemplateError: the image size is not positive, or a shape has an
            unknown type. Nothing is returned, so callers never see a
            partially applied template.
    """
    if image_width <= 0 or image_height <= 0:
        raise TemplateError(
            f"Cannot apply template {template.id!r} to a {image_width}x{image_height} image"
        )
    new_id = id_factory or new_annotation_id
    now = clock or now_ms

    annotations: list[AnnotationBase] = []
    for shape in template.annotations:
        common = {
            "id": new_id(),
            "color": shape.color,
            "thickness": shape.thickness,
            "created_at": now(),
        }

        if shape.type == AnnotationType.ARROW:
            annotation: AnnotationBase = ArrowAnnotation(
                **common,
                start=Point(
                    x=_scale(shape.relative_start_x, image_width),
                    y=_scale(shape.relative_start_y, image_height),
                ),
                end=Point(
                    x=_scale(shape.relative_end_x, image_width),
                    y=_scale(shape.relative_end_y, image_height),
                ),
            )
        elif shape.type == AnnotationType.RECTANGLE:
            annotation = RectangleAnnotation(
                **common,
                origin=Point(
                    x=_scale(shape.relative_x, image_width),
                    y=_scale(shape.relative_y, image_height),
                ),
                width=_scale(shape.relative_width, image_width),
                height=_scale(shape.relative_height, image_height),
            )
        elif shape.type == AnnotationType.TEXT:
            font_fraction = (
                shape.relative_font_size
                if shape.relative_font_size is not None
                else _DEFAULT_RELATIVE_FONT_SIZE
            )
            annotation = TextAnnotation(
                **common,
                position=Point(
                    x=_scale(shape.relative_x, image_width),
                    y=_scale(shape.relative_y, image_height),
                ),
                text=shape.text or "",
                font_size=font_fraction * image_height,
            )
        else:
            raise TemplateError(
                f"Unknown template annotation type {shape.type!r} in template {template.id!r}"
            )
        annotations.append(annotation)

    return annotations


def stamp_template(
    store: AnnotationStore,
    template: Template,
    image_width: float,
    image_height: float,
    *,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> list[AnnotationBase]:
    """Add a template's shapes on top of the store's annotations as one undo step.

    The store is untouched when the template cannot be applied.
    """
    added = apply_template(
        template, image_width, image_height, id_factory=id_factory, clock=clock
    )
    store.replace_all([*store.annotations, *added])
    logger.info(
        "Applied template %s (%d annotations) at %dx%d",
        template.id, len(added), image_width, image_height,
    )
    return added
