"""Annotation store — ordered annotations with bounded snapshot undo/redo.

Insertion order is paint order: the last annotation is drawn on top.

Every mutation except undo/redo records the pre-mutation sequence on the undo
stack (oldest snapshot evicted past ``max_undo_depth``) and clears the redo
stack. Undo and redo only move snapshots between the two stacks.

Snapshots are tuples of frozen annotation models, so sharing them between
the current state and the stacks is safe.
"""

import logging
import threading
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Any

from snapredact.config import get_settings
from snapredact.schemas.annotation import AnnotationBase

logger = logging.getLogger("snapredact.store")

Snapshot = tuple[AnnotationBase, ...]


class AnnotationStore:
    """Versioned annotation sequence for one image."""

    def __init__(self, max_undo_depth: int | None = None) -> None:
        depth = max_undo_depth if max_undo_depth is not None else get_settings().max_undo_depth
        if depth < 1:
            raise ValueError(f"max_undo_depth must be at least 1, got {depth}")
        self._max_undo_depth = depth
        self._annotations: Snapshot = ()
        self._undo_stack: deque[Snapshot] = deque(maxlen=depth)
        self._redo_stack: list[Snapshot] = []
        # Guards the sequence and both stacks together
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def annotations(self) -> Snapshot:
        return self._annotations

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    @property
    def max_undo_depth(self) -> int:
        return self._max_undo_depth

    def get(self, annotation_id: str) -> AnnotationBase | None:
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    def __len__(self) -> int:
        return len(self._annotations)

    def __iter__(self) -> Iterator[AnnotationBase]:
        return iter(self._annotations)

    # ------------------------------------------------------------------
    # Mutations (one history step each)
    # ------------------------------------------------------------------

    def add(self, annotation: AnnotationBase) -> None:
        """Append *annotation* on top of the paint order."""
        with self._lock:
            self._commit(self._annotations + (annotation,))
        logger.debug("Added %s annotation %s", annotation.type, annotation.id)

    def update(self, annotation_id: str, **fields: Any) -> bool:
        """Replace fields of the annotation with *annotation_id*.

        The annotation keeps its variant; changing ``type`` or ``id`` raises
        ``ValueError`` and invalid values raise ``ValidationError``, both
        before history is touched.

        A missing id still records a history step and returns ``False``.
        """
        with self._lock:
            found = False
            updated: list[AnnotationBase] = []
            for annotation in self._annotations:
                if annotation.id == annotation_id:
                    annotation = annotation.with_changes(**fields)
                    found = True
                updated.append(annotation)
            self._commit(tuple(updated))

        if not found:
            logger.warning("update: no annotation with id %s", annotation_id)
        return found

    def remove(self, annotation_id: str) -> bool:
        """Remove the annotation with *annotation_id*.

        A missing id still records a history step and returns ``False``.
        """
        with self._lock:
            remaining = tuple(a for a in self._annotations if a.id != annotation_id)
            found = len(remaining) != len(self._annotations)
            self._commit(remaining)

        if not found:
            logger.warning("remove: no annotation with id %s", annotation_id)
        return found

    def clear(self) -> bool:
        """Remove every annotation; does nothing when already empty."""
        with self._lock:
            if not self._annotations:
                return False
            self._commit(())
        return True

    def replace_all(self, annotations: Iterable[AnnotationBase]) -> None:
        """Swap in a whole new sequence as a single undoable step."""
        with self._lock:
            self._commit(tuple(annotations))

    # ------------------------------------------------------------------
    # History navigation
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns ``False`` if there is none."""
        with self._lock:
            if not self._undo_stack:
                return False
            self._redo_stack.append(self._annotations)
            self._annotations = self._undo_stack.pop()
        return True

    def redo(self) -> bool:
        """Re-apply the last undone snapshot. Returns ``False`` if there is none."""
        with self._lock:
            if not self._redo_stack:
                return False
            self._undo_stack.append(self._annotations)
            self._annotations = self._redo_stack.pop()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, new_state: Snapshot) -> None:
        # deque(maxlen) evicts the oldest snapshot when full
        self._undo_stack.append(self._annotations)
        self._redo_stack.clear()
        self._annotations = new_state
