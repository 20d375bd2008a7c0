"""Field-level comparison of two definition sets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from ontosync.domain.models import JSONValue, Ontology

# Fields whose lists are sets: member order carries no meaning.
_UNORDERED_FIELDS: Final[frozenset[tuple[str, ...]]] = frozenset(
    {
        ("properties", "required"),
        ("properties", "optional"),
        ("subobjects", "required"),
        ("subobjects", "optional"),
        ("allowed_values",),
    }
)


@dataclass(frozen=True, slots=True)
class FieldChange:
    field: str
    old: JSONValue
    new: JSONValue

    def to_dict(self) -> dict[str, JSONValue]:
        return {"field": self.field, "old": self.old, "new": self.new}


@dataclass(frozen=True, slots=True)
class ModifiedEntity:
    name: str
    changes: tuple[FieldChange, ...]

    @property
    def changed_fields(self) -> tuple[str, ...]:
        return tuple(change.field for change in self.changes)

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "changes": [change.to_dict() for change in self.changes]}


@dataclass(frozen=True, slots=True)
class EntityDiff:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    modified: tuple[ModifiedEntity, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "modified": [item.to_dict() for item in self.modified],
            "unchanged": list(self.unchanged),
        }


@dataclass(frozen=True, slots=True)
class SchemaDiff:
    categories: EntityDiff
    properties: EntityDiff
    subobjects: EntityDiff

    @property
    def has_changes(self) -> bool:
        return (
            self.categories.has_changes
            or self.properties.has_changes
            or self.subobjects.has_changes
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "categories": self.categories.to_dict(),
            "properties": self.properties.to_dict(),
            "subobjects": self.subobjects.to_dict(),
        }


class SchemaComparer:
    """Compare a new definition set against an old one."""

    def compare(self, new: Ontology, old: Ontology) -> SchemaDiff:
        return SchemaDiff(
            categories=_compare_entities(
                {name: item.to_dict() for name, item in new.categories.items()},
                {name: item.to_dict() for name, item in old.categories.items()},
            ),
            properties=_compare_entities(
                {name: item.to_dict() for name, item in new.properties.items()},
                {name: item.to_dict() for name, item in old.properties.items()},
            ),
            subobjects=_compare_entities(
                {name: item.to_dict() for name, item in new.subobjects.items()},
                {name: item.to_dict() for name, item in old.subobjects.items()},
            ),
        )


def _compare_entities(
    new: Mapping[str, Mapping[str, JSONValue]],
    old: Mapping[str, Mapping[str, JSONValue]],
) -> EntityDiff:
    added: list[str] = []
    removed: list[str] = []
    modified: list[ModifiedEntity] = []
    unchanged: list[str] = []

    for name in sorted(set(new) | set(old)):
        if name not in old:
            added.append(name)
            continue
        if name not in new:
            removed.append(name)
            continue
        changes = _diff_fields(new[name], old[name], ())
        if changes:
            modified.append(ModifiedEntity(name=name, changes=tuple(changes)))
        else:
            unchanged.append(name)

    return EntityDiff(
        added=tuple(added),
        removed=tuple(removed),
        modified=tuple(modified),
        unchanged=tuple(unchanged),
    )


def _diff_fields(
    new: Mapping[str, JSONValue],
    old: Mapping[str, JSONValue],
    prefix: tuple[str, ...],
) -> list[FieldChange]:
    changes: list[FieldChange] = []
    for key in sorted(set(new) | set(old)):
        path = (*prefix, key)
        new_value = new.get(key)
        old_value = old.get(key)
        if isinstance(new_value, dict) and isinstance(old_value, dict):
            changes.extend(_diff_fields(new_value, old_value, path))
            continue
        if _normalize(new_value, path) != _normalize(old_value, path):
            changes.append(FieldChange(field=".".join(path), old=old_value, new=new_value))
    return changes


def _normalize(value: JSONValue, path: tuple[str, ...]) -> object:
    if path in _UNORDERED_FIELDS and isinstance(value, list):
        return sorted(str(item) for item in value)
    if value == [] or value == {}:
        return None
    return value


__all__ = [
    "EntityDiff",
    "FieldChange",
    "ModifiedEntity",
    "SchemaComparer",
    "SchemaDiff",
]
