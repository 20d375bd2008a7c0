"""
ontosync — hierarchy views.

File: src/ontosync/schema/hierarchy.py

Purpose
- Describe the ancestor graph of one category together with what it inherits,
  for existing categories and for a category that is about to be created.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from ontosync.domain.errors import OntologyError
from ontosync.domain.models import Category, JSONValue
from ontosync.schema.inheritance import InheritanceResolver

_Getter = Callable[[Category], tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class HierarchyItem:
    """One inherited property or subobject as shown in a hierarchy view."""

    name: str
    source: str
    required: bool

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "source": self.source, "required": self.required}


@dataclass(frozen=True, slots=True)
class HierarchyView:
    root: str
    nodes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    properties: tuple[HierarchyItem, ...] = ()
    subobjects: tuple[HierarchyItem, ...] = ()
    virtual: bool = False
    error: OntologyError | None = None

    @property
    def exists(self) -> bool:
        return bool(self.nodes) and self.error is None

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "root": self.root,
            "virtual": self.virtual,
            "nodes": {name: list(parents) for name, parents in self.nodes.items()},
            "properties": [item.to_dict() for item in self.properties],
            "subobjects": [item.to_dict() for item in self.subobjects],
        }
        if self.error is not None:
            out["error"] = str(self.error)
        return out


def build_hierarchy(resolver: InheritanceResolver, name: str) -> HierarchyView:
    """Ancestor graph and inherited items of an existing category."""
    linearization = resolver.linearize(name)
    if linearization.error is not None:
        nodes = _node_tree((name,), resolver.categories) if name in resolver.categories else {}
        return HierarchyView(root=name, nodes=MappingProxyType(nodes), error=linearization.error)

    categories = resolver.categories
    return HierarchyView(
        root=name,
        nodes=MappingProxyType(_node_tree(linearization.order, categories)),
        properties=_collect(
            linearization.order,
            categories,
            required=lambda category: category.required_properties,
            optional=lambda category: category.optional_properties,
        ),
        subobjects=_collect(
            linearization.order,
            categories,
            required=lambda category: category.required_subobjects,
            optional=lambda category: category.optional_subobjects,
        ),
    )


def build_virtual_hierarchy(
    resolver: InheritanceResolver,
    name: str,
    parents: Iterable[str],
) -> HierarchyView:
    """
    Preview the hierarchy of a category that does not exist yet.

    Unknown parents are dropped. Inherited items are collected from each
    remaining parent's ancestor chain in parent order.
    """
    categories = resolver.categories
    valid_parents = tuple(dict.fromkeys(p for p in parents if p in categories))

    nodes: dict[str, tuple[str, ...]] = {name: valid_parents}
    order: list[str] = []
    error: OntologyError | None = None
    for parent in valid_parents:
        linearization = resolver.linearize(parent)
        if linearization.error is not None:
            error = error or linearization.error
            continue
        for ancestor in linearization.order:
            if ancestor not in order:
                order.append(ancestor)
    for node, node_parents in _node_tree(valid_parents, categories).items():
        nodes.setdefault(node, node_parents)

    return HierarchyView(
        root=name,
        nodes=MappingProxyType(nodes),
        properties=_collect(
            order,
            categories,
            required=lambda category: category.required_properties,
            optional=lambda category: category.optional_properties,
        ),
        subobjects=_collect(
            order,
            categories,
            required=lambda category: category.required_subobjects,
            optional=lambda category: category.optional_subobjects,
        ),
        virtual=True,
        error=error,
    )


def _node_tree(
    starts: Sequence[str], categories: Mapping[str, Category]
) -> dict[str, tuple[str, ...]]:
    nodes: dict[str, tuple[str, ...]] = {}
    pending = list(starts)
    while pending:
        current = pending.pop(0)
        if current in nodes:
            continue
        category = categories.get(current)
        if category is None:
            continue
        nodes[current] = category.parents
        pending.extend(category.parents)
    return nodes


def _collect(
    order: Sequence[str],
    categories: Mapping[str, Category],
    *,
    required: _Getter,
    optional: _Getter,
) -> tuple[HierarchyItem, ...]:
    # Closest declaration names the source; required anywhere stays required.
    sources: dict[str, str] = {}
    required_names: set[str] = set()
    for ancestor in order:
        category = categories.get(ancestor)
        if category is None:
            continue
        for item in required(category):
            required_names.add(item)
            sources.setdefault(item, ancestor)
        for item in optional(category):
            sources.setdefault(item, ancestor)
    return tuple(
        HierarchyItem(name=item, source=source, required=item in required_names)
        for item, source in sources.items()
    )


__all__ = ["HierarchyItem", "HierarchyView", "build_hierarchy", "build_virtual_hierarchy"]
