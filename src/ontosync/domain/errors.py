"""
ontosync — structural error taxonomy.

File: src/ontosync/domain/errors.py

Purpose
- Name every blocking failure the engine can report about a definition set.

Functional requirements
- Structural errors are usable both as raised exceptions (orderer, strict
  callers) and as plain data attached to resolution results.
- Messages are deterministic so equal inputs render equal text.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import StrEnum

from ontosync.constants import PATH_SEPARATOR


class StructuralErrorKind(StrEnum):
    """Kinds of blocking structural problems."""

    CYCLE = "cycle"
    DANGLING_REFERENCE = "dangling_reference"
    LINEARIZATION_CONFLICT = "linearization_conflict"


class OntologyError(Exception):
    """Base class for engine errors."""


class StructuralError(OntologyError, ValueError):
    """A definition set that cannot be resolved as written."""

    kind: StructuralErrorKind
    category: str
    subjects: tuple[str, ...]

    def __init__(
        self,
        kind: StructuralErrorKind,
        message: str,
        *,
        category: str,
        subjects: Iterable[str] = (),
    ) -> None:
        self.kind = kind
        self.category = category
        self.subjects = tuple(subjects)
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    def identity(self) -> tuple[str, tuple[str, ...]]:
        """Key that is equal for two reports of the same underlying problem."""
        return (self.kind.value, self.subjects)


class CycleError(StructuralError):
    """Raised or reported when parent links form a loop."""

    cycles: tuple[tuple[str, ...], ...]

    def __init__(self, cycles: Iterable[Sequence[str]], *, category: str | None = None) -> None:
        normalized: tuple[tuple[str, ...], ...] = tuple(tuple(path) for path in cycles)
        self.cycles = normalized

        if not normalized:
            message = "Circular inheritance detected."
        else:
            rendered = ", ".join(render_path(path) for path in normalized)
            message = f"Circular inheritance detected: {rendered}"

        subjects = normalized[0] if normalized else ()
        owner = category if category is not None else (subjects[0] if subjects else "")
        super().__init__(
            StructuralErrorKind.CYCLE,
            message,
            category=owner,
            subjects=subjects,
        )

    def identity(self) -> tuple[str, tuple[str, ...]]:
        flattened = tuple(node for path in self.cycles for node in path)
        return (self.kind.value, flattened)


class DanglingReferenceError(StructuralError):
    """A category names a parent that is not defined."""

    missing: str

    def __init__(self, category: str, missing: str) -> None:
        self.missing = missing
        super().__init__(
            StructuralErrorKind.DANGLING_REFERENCE,
            f"Category '{category}' references nonexistent parent '{missing}'",
            category=category,
            subjects=(category, missing),
        )


class LinearizationConflictError(StructuralError):
    """No consistent C3 order exists for a category's ancestors."""

    pending: tuple[tuple[str, ...], ...]

    def __init__(self, category: str, pending: Iterable[Sequence[str]]) -> None:
        self.pending = tuple(tuple(seq) for seq in pending if seq)
        heads = sorted({seq[0] for seq in self.pending})
        rendered = ", ".join(heads) if heads else "<none>"
        super().__init__(
            StructuralErrorKind.LINEARIZATION_CONFLICT,
            (
                f"Cannot linearize category '{category}': parent order is inconsistent "
                f"(conflicting heads: {rendered})"
            ),
            category=category,
            subjects=(category, *heads),
        )


class CategoryNotFoundError(OntologyError, LookupError):
    """Raised or reported when a requested category does not exist."""

    name: str

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Category '{name}' not found")


def render_path(path: Sequence[str]) -> str:
    """Render an inheritance path, e.g. ``A → B → A``."""
    return PATH_SEPARATOR.join(path)


__all__ = [
    "CategoryNotFoundError",
    "CycleError",
    "DanglingReferenceError",
    "LinearizationConflictError",
    "OntologyError",
    "StructuralError",
    "StructuralErrorKind",
    "render_path",
]
