"""
ontosync — inheritance resolution.

File: src/ontosync/schema/inheritance.py

Purpose
- Compute each category's ancestor order (C3 linearization) and its effective
  category: everything it has once every ancestor's declarations are merged.

Functional requirements
- Linearization is monotonic, keeps declared parent order, and fails with a
  conflict instead of picking an arbitrary order.
- Failures (unknown target, unknown parent, cycle, conflict) are returned as
  data on the result for that name; siblings are unaffected.
- Anything required anywhere in the chain is required in the effective view.
- Linearizations are memoized per resolver instance; ``clear_cache`` drops them.

Non-functional requirements
- Deterministic output for identical input.
- Safe to share between threads.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import structlog

from ontosync.domain.errors import (
    CategoryNotFoundError,
    CycleError,
    DanglingReferenceError,
    LinearizationConflictError,
    OntologyError,
    StructuralError,
)
from ontosync.domain.models import (
    Category,
    EffectiveCategory,
    EffectiveSection,
    InheritedItem,
    Section,
)
from ontosync.schema.graph import canonicalize_cycle


@dataclass(frozen=True, slots=True)
class Linearization:
    """Ancestor order of one category (target first) or the reason there is none."""

    category: str
    order: tuple[str, ...] = ()
    error: OntologyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> tuple[str, ...]:
        if self.error is not None:
            raise self.error
        return self.order


@dataclass(frozen=True, slots=True)
class Resolution:
    """Effective category for one name, or the error that prevented it."""

    category: str
    effective: EffectiveCategory | None = None
    error: OntologyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.effective is not None

    def unwrap(self) -> EffectiveCategory:
        if self.error is not None:
            raise self.error
        if self.effective is None:
            raise CategoryNotFoundError(self.category)
        return self.effective


class _ItemState:
    __slots__ = ("required", "source", "required_by")

    def __init__(self, *, required: bool, source: str) -> None:
        self.required = required
        self.source = source
        self.required_by: str | None = source if required else None


class InheritanceResolver:
    """C3 resolver over a name-keyed category map."""

    def __init__(
        self,
        categories: Mapping[str, Category] | Iterable[Category],
        *,
        logger: Any | None = None,
    ) -> None:
        if isinstance(categories, Mapping):
            snapshot = dict(categories)
        else:
            snapshot = {category.name: category for category in categories}
        self._categories: Mapping[str, Category] = MappingProxyType(snapshot)
        self._linearizations: dict[str, Linearization] = {}
        self._effective: dict[str, Resolution] = {}
        self._lock = threading.RLock()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def categories(self) -> Mapping[str, Category]:
        return self._categories

    def get(self, name: str) -> Category | None:
        return self._categories.get(name)

    def clear_cache(self) -> None:
        with self._lock:
            self._linearizations.clear()
            self._effective.clear()

    def linearize(self, name: str) -> Linearization:
        """Return the C3 linearization of ``name``, closest first, ``name`` included."""
        with self._lock:
            if name not in self._categories:
                return Linearization(category=name, error=CategoryNotFoundError(name))
            return self._linearize(name, ())

    def ancestors(self, name: str) -> tuple[str, ...]:
        """Linearization of ``name``; raises the reported error instead of returning it."""
        return self.linearize(name).unwrap()

    def is_ancestor_of(self, ancestor: str, name: str) -> bool:
        result = self.linearize(name)
        return result.ok and ancestor in result.order[1:]

    def effective_category(self, name: str) -> Resolution:
        """Merge every ancestor's declaration into the effective view of ``name``."""
        with self._lock:
            cached = self._effective.get(name)
            if cached is not None:
                return cached

            linearization = self.linearize(name)
            if linearization.error is not None:
                resolution = Resolution(category=name, error=linearization.error)
            else:
                resolution = Resolution(
                    category=name,
                    effective=self._merge(name, linearization.order),
                )
            self._effective[name] = resolution
            return resolution

    def validate_inheritance(self) -> tuple[StructuralError, ...]:
        """Every distinct structural error across the category map."""
        errors: list[StructuralError] = []
        seen: set[tuple[str, tuple[str, ...]]] = set()
        for name in sorted(self._categories):
            error = self.linearize(name).error
            if not isinstance(error, StructuralError):
                continue
            identity = error.identity()
            if identity in seen:
                continue
            seen.add(identity)
            errors.append(error)
        return tuple(errors)

    def _linearize(self, name: str, visiting: tuple[str, ...]) -> Linearization:
        cached = self._linearizations.get(name)
        if cached is not None:
            return cached

        if name in visiting:
            start = visiting.index(name)
            path = canonicalize_cycle((*visiting[start:], name))
            return Linearization(category=name, error=CycleError([path], category=path[0]))

        category = self._categories[name]
        trail = (*visiting, name)
        parent_orders: list[tuple[str, ...]] = []
        failure: OntologyError | None = None
        for parent in category.parents:
            if parent not in self._categories:
                failure = DanglingReferenceError(name, parent)
                break
            parent_result = self._linearize(parent, trail)
            if parent_result.error is not None:
                failure = parent_result.error
                break
            parent_orders.append(parent_result.order)

        if failure is not None:
            result = Linearization(category=name, error=failure)
        else:
            merged = _c3_merge(name, [*parent_orders, category.parents])
            if isinstance(merged, LinearizationConflictError):
                result = Linearization(category=name, error=merged)
            else:
                result = Linearization(category=name, order=(name, *merged))

        # Nested cycle reports depend on the entry point; only cache them at the top.
        if not visiting:
            if result.error is not None:
                self._logger.info(
                    "linearization_failed",
                    category=name,
                    error_type=type(result.error).__name__,
                    error=str(result.error),
                )
            self._linearizations[name] = result
        elif not isinstance(result.error, CycleError):
            self._linearizations[name] = result
        return result

    def _merge(self, name: str, order: Sequence[str]) -> EffectiveCategory:
        properties: dict[str, _ItemState] = {}
        subobjects: dict[str, _ItemState] = {}
        sections: dict[str, tuple[list[str], str]] = {}
        header: tuple[str, ...] = ()
        form_sections: tuple[Section, ...] = ()

        for current in reversed(order):
            declaration = self._categories[current]
            _apply_items(
                properties,
                current,
                declaration.required_properties,
                declaration.optional_properties,
            )
            _apply_items(
                subobjects,
                current,
                declaration.required_subobjects,
                declaration.optional_subobjects,
            )
            for section in declaration.display_sections:
                existing = sections.get(section.name)
                names = existing[0] if existing is not None else []
                for prop in section.properties:
                    if prop not in names:
                        names.append(prop)
                sections[section.name] = (names, current)
            if declaration.display_header:
                header = declaration.display_header
            if declaration.form_sections:
                form_sections = declaration.form_sections

        return EffectiveCategory(
            name=name,
            category=self._categories[name],
            ancestors=tuple(order),
            properties=_freeze_items(properties),
            subobjects=_freeze_items(subobjects),
            display_header=header,
            sections=tuple(
                EffectiveSection(name=section_name, properties=tuple(names), owner=owner)
                for section_name, (names, owner) in sections.items()
            ),
            form_sections=form_sections,
        )


def _c3_merge(
    name: str, sequences: Sequence[Sequence[str]]
) -> tuple[str, ...] | LinearizationConflictError:
    pending = [list(seq) for seq in sequences if seq]
    result: list[str] = []
    while pending:
        head: str | None = None
        for seq in pending:
            candidate = seq[0]
            if not any(candidate in other[1:] for other in pending):
                head = candidate
                break
        if head is None:
            return LinearizationConflictError(name, pending)
        result.append(head)
        pending = [seq[1:] if seq[0] == head else seq for seq in pending]
        pending = [seq for seq in pending if seq]
    return tuple(result)


def _apply_items(
    items: dict[str, _ItemState],
    declared_by: str,
    required: Sequence[str],
    optional: Sequence[str],
) -> None:
    for item_name in required:
        state = items.get(item_name)
        if state is None:
            items[item_name] = _ItemState(required=True, source=declared_by)
        elif not state.required:
            state.required = True
            state.required_by = declared_by
    for item_name in optional:
        if item_name not in items:
            items[item_name] = _ItemState(required=False, source=declared_by)


def _freeze_items(items: Mapping[str, _ItemState]) -> tuple[InheritedItem, ...]:
    return tuple(
        InheritedItem(
            name=item_name,
            required=state.required,
            source=state.source,
            required_by=state.required_by,
        )
        for item_name, state in items.items()
    )


__all__ = ["InheritanceResolver", "Linearization", "Resolution"]
