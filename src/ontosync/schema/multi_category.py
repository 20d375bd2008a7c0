"""Merge the effective categories of several categories into one property set."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ontosync.domain.errors import OntologyError
from ontosync.domain.models import EffectiveCategory, JSONValue
from ontosync.schema.inheritance import InheritanceResolver


@dataclass(frozen=True, slots=True)
class ResolvedPropertySet:
    """Union of several effective categories with per-item source attribution."""

    categories: tuple[str, ...] = ()
    required_properties: tuple[str, ...] = ()
    optional_properties: tuple[str, ...] = ()
    property_sources: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    required_subobjects: tuple[str, ...] = ()
    optional_subobjects: tuple[str, ...] = ()
    subobject_sources: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    errors: Mapping[str, OntologyError] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> ResolvedPropertySet:
        return cls()

    @property
    def all_properties(self) -> tuple[str, ...]:
        return self.required_properties + self.optional_properties

    @property
    def all_subobjects(self) -> tuple[str, ...]:
        return self.required_subobjects + self.optional_subobjects

    @property
    def ok(self) -> bool:
        return not self.errors

    def is_required_property(self, name: str) -> bool:
        return name in self.required_properties

    def is_shared_property(self, name: str) -> bool:
        return len(self.property_sources.get(name, ())) > 1

    def is_shared_subobject(self, name: str) -> bool:
        return len(self.subobject_sources.get(name, ())) > 1

    def sources_for_property(self, name: str) -> tuple[str, ...]:
        return self.property_sources.get(name, ())

    def sources_for_subobject(self, name: str) -> tuple[str, ...]:
        return self.subobject_sources.get(name, ())

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "categories": list(self.categories),
            "required_properties": list(self.required_properties),
            "optional_properties": list(self.optional_properties),
            "property_sources": {
                name: list(sources) for name, sources in self.property_sources.items()
            },
            "required_subobjects": list(self.required_subobjects),
            "optional_subobjects": list(self.optional_subobjects),
            "subobject_sources": {
                name: list(sources) for name, sources in self.subobject_sources.items()
            },
            "errors": {name: str(error) for name, error in self.errors.items()},
        }


class _Accumulator:
    __slots__ = ("required", "optional", "sources")

    def __init__(self) -> None:
        self.required: list[str] = []
        self.optional: list[str] = []
        self.sources: dict[str, list[str]] = {}

    def add(self, name: str, *, required: bool, source: str) -> None:
        if required:
            if name not in self.required:
                self.required.append(name)
        elif name not in self.optional:
            self.optional.append(name)
        sources = self.sources.setdefault(name, [])
        if source not in sources:
            sources.append(source)

    def freeze(
        self,
    ) -> tuple[tuple[str, ...], tuple[str, ...], Mapping[str, tuple[str, ...]]]:
        required = tuple(self.required)
        optional = tuple(name for name in self.optional if name not in self.required)
        sources = MappingProxyType(
            {name: tuple(values) for name, values in self.sources.items()}
        )
        return required, optional, sources


class MultiCategoryResolver:
    """Resolve the combined property set of a page that belongs to several categories."""

    def __init__(self, resolver: InheritanceResolver) -> None:
        self._resolver = resolver

    def resolve(self, names: Iterable[str]) -> ResolvedPropertySet:
        requested: list[str] = []
        for name in names:
            if name not in requested:
                requested.append(name)
        if not requested:
            return ResolvedPropertySet.empty()

        properties = _Accumulator()
        subobjects = _Accumulator()
        errors: dict[str, OntologyError] = {}

        for name in requested:
            resolution = self._resolver.effective_category(name)
            if resolution.error is not None or resolution.effective is None:
                if resolution.error is not None:
                    errors[name] = resolution.error
                continue
            _accumulate(resolution.effective, properties, subobjects)

        required_properties, optional_properties, property_sources = properties.freeze()
        required_subobjects, optional_subobjects, subobject_sources = subobjects.freeze()
        return ResolvedPropertySet(
            categories=tuple(requested),
            required_properties=required_properties,
            optional_properties=optional_properties,
            property_sources=property_sources,
            required_subobjects=required_subobjects,
            optional_subobjects=optional_subobjects,
            subobject_sources=subobject_sources,
            errors=MappingProxyType(errors),
        )


def _accumulate(
    effective: EffectiveCategory,
    properties: _Accumulator,
    subobjects: _Accumulator,
) -> None:
    for item in effective.properties:
        properties.add(item.name, required=item.required, source=effective.name)
    for item in effective.subobjects:
        subobjects.add(item.name, required=item.required, source=effective.name)


__all__ = ["MultiCategoryResolver", "ResolvedPropertySet"]
