"""Dependency ordering: parents before children, ties broken by name."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from ontosync.domain.errors import DanglingReferenceError
from ontosync.domain.models import Category, JSONValue, Ontology
from ontosync.schema.graph import InheritanceGraph


class EntityKind(StrEnum):
    PROPERTY = "property"
    SUBOBJECT = "subobject"
    CATEGORY = "category"


@dataclass(frozen=True, slots=True)
class PlanStep:
    kind: EntityKind
    name: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {"kind": self.kind.value, "name": self.name}


@dataclass(frozen=True, slots=True)
class ApplicationPlan:
    """The order in which definitions can be applied one at a time."""

    steps: tuple[PlanStep, ...]

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps if step.kind is EntityKind.CATEGORY)

    def __iter__(self) -> Iterator[PlanStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def to_dict(self) -> dict[str, JSONValue]:
        return {"steps": [step.to_dict() for step in self.steps]}


def order_categories(
    categories: Mapping[str, Category] | Iterable[Category],
    *,
    strict: bool = False,
) -> tuple[str, ...]:
    """
    Sort category names so every category follows all of its parents.

    Raises ``CycleError`` when parent links loop. Parents missing from the map
    are ignored unless ``strict`` is set, which raises ``DanglingReferenceError``.
    """
    if not isinstance(categories, Mapping):
        categories = {category.name: category for category in categories}
    if strict:
        for name in sorted(categories):
            for parent in categories[name].parents:
                if parent not in categories:
                    raise DanglingReferenceError(name, parent)
    return InheritanceGraph.from_categories(categories).topological_sort()


class DependencyOrderer:
    """Produces the category order and the full application plan."""

    def __init__(self, *, strict: bool = False, logger: Any | None = None) -> None:
        self._strict = strict
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def order(self, categories: Mapping[str, Category] | Iterable[Category]) -> tuple[str, ...]:
        try:
            ordered = order_categories(categories, strict=self._strict)
        except ValueError as exc:
            self._logger.warning("category_ordering_failed", error=str(exc))
            raise
        self._logger.debug("categories_ordered", count=len(ordered))
        return ordered

    def plan(self, ontology: Ontology) -> ApplicationPlan:
        """Properties, then subobjects, then categories in dependency order."""
        steps: list[PlanStep] = [
            PlanStep(EntityKind.PROPERTY, name) for name in sorted(ontology.properties)
        ]
        steps.extend(PlanStep(EntityKind.SUBOBJECT, name) for name in sorted(ontology.subobjects))
        steps.extend(
            PlanStep(EntityKind.CATEGORY, name) for name in self.order(ontology.categories)
        )
        return ApplicationPlan(steps=tuple(steps))


__all__ = [
    "ApplicationPlan",
    "DependencyOrderer",
    "EntityKind",
    "PlanStep",
    "order_categories",
]
