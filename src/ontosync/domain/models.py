"""
ontosync — canonical definition model.

File: src/ontosync/domain/models.py

Purpose
- Immutable value types for categories, properties, subobjects, and the
  effective (inherited) view of a category.

What should be included in this file
- Closed datatype vocabulary plus an explicit escape hatch for unknown tags.
- Tagged display configuration resolved by a fixed priority.
- The pure merge rule used when a child inherits from a parent.
- Construction from already-parsed mappings and canonical ``to_dict`` output.

Functional requirements
- Graph edges are parent names, never object references.
- Name lists are stripped and deduplicated preserving first occurrence.
- Construction validates names and raises ``ValueError`` with a field path.

Non-functional requirements
- No I/O; deterministic serialization.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, NoReturn, TypeVar

from ontosync.constants import INVALID_NAME_CHARACTERS

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_SANITIZED_TAG = re.compile(r"^[A-Za-z0-9 _-]+$")
_PROPERTY_PREFIX = re.compile(r"^has[ _]", re.IGNORECASE)

TEntity = TypeVar("TEntity", "Category", "Property", "Subobject")


class BuiltinDatatype(StrEnum):
    """Datatypes the engine knows how to generate artifacts for."""

    TEXT = "Text"
    PAGE = "Page"
    DATE = "Date"
    NUMBER = "Number"
    EMAIL = "Email"
    URL = "URL"
    BOOLEAN = "Boolean"
    CODE = "Code"
    GEOGRAPHIC_COORDINATE = "Geographic coordinate"
    QUANTITY = "Quantity"
    TEMPERATURE = "Temperature"
    TELEPHONE_NUMBER = "Telephone number"
    ANNOTATION_URI = "Annotation URI"
    EXTERNAL_IDENTIFIER = "External identifier"
    KEYWORD = "Keyword"
    MONOLINGUAL_TEXT = "Monolingual text"
    RECORD = "Record"
    REFERENCE = "Reference"


_BUILTIN_BY_KEY: dict[str, BuiltinDatatype] = {
    member.value.casefold(): member for member in BuiltinDatatype
}


@dataclass(frozen=True, slots=True)
class CustomDatatype:
    """A datatype tag outside the built-in vocabulary, kept verbatim."""

    tag: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "tag", _as_str(self.tag, "CustomDatatype.tag"))

    @property
    def is_sanitized(self) -> bool:
        return _SANITIZED_TAG.fullmatch(self.tag) is not None

    def __str__(self) -> str:
        return self.tag


Datatype = BuiltinDatatype | CustomDatatype


def parse_datatype(raw: str | BuiltinDatatype | CustomDatatype) -> Datatype:
    """Map ``raw`` onto the built-in vocabulary, case-insensitively."""
    if isinstance(raw, (BuiltinDatatype, CustomDatatype)):
        return raw
    tag = _as_str(raw, "datatype")
    builtin = _BUILTIN_BY_KEY.get(tag.casefold())
    if builtin is not None:
        return builtin
    return CustomDatatype(tag)


def is_builtin_datatype(datatype: Datatype) -> bool:
    return isinstance(datatype, BuiltinDatatype)


# Display configuration, in resolution priority order.


@dataclass(frozen=True, slots=True)
class TemplateDisplay:
    """Render through an explicitly named template."""

    template: str


@dataclass(frozen=True, slots=True)
class PatternDisplay:
    """Render the way another property renders."""

    property_name: str


@dataclass(frozen=True, slots=True)
class BuiltinDisplay:
    """Render with one of the renderer's built-in display types."""

    display_type: str


@dataclass(frozen=True, slots=True)
class DefaultDisplay:
    """Render the escaped raw value."""


DisplayConfig = TemplateDisplay | PatternDisplay | BuiltinDisplay | DefaultDisplay


@dataclass(frozen=True, slots=True)
class Section:
    """Named, ordered group of property names used for display and forms."""

    name: str
    properties: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _as_str(self.name, "Section.name"))
        object.__setattr__(
            self, "properties", _as_name_tuple(self.properties, f"Section[{self.name}].properties")
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "Section") -> Section:
        parsed = _expect_object(data, path, required={"name"}, optional={"properties"})
        return cls(
            name=_as_str(parsed["name"], f"{path}.name"),
            properties=_as_name_tuple(parsed.get("properties", ()), f"{path}.properties"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "properties": list(self.properties)}


@dataclass(frozen=True, slots=True)
class Property:
    """A typed attribute that categories and subobjects reference by name."""

    name: str
    datatype: Datatype = BuiltinDatatype.TEXT
    label: str | None = None
    description: str | None = None
    allowed_values: tuple[str, ...] = ()
    allows_multiple_values: bool = False
    range_category: str | None = None
    subproperty_of: str | None = None
    display_template: str | None = None
    display_pattern: str | None = None
    display_type: str | None = None
    input_type: str | None = None

    def __post_init__(self) -> None:
        path = "Property"
        name = _as_name(self.name, f"{path}.name")
        path = f"Property[{name}]"
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "datatype", parse_datatype(self.datatype))
        object.__setattr__(
            self,
            "label",
            _as_optional_str(self.label, f"{path}.label") or _label_from_property_name(name),
        )
        object.__setattr__(
            self, "description", _as_optional_str(self.description, f"{path}.description")
        )
        object.__setattr__(
            self,
            "allowed_values",
            _as_str_tuple(self.allowed_values, f"{path}.allowed_values"),
        )
        if not isinstance(self.allows_multiple_values, bool):
            _fail(f"{path}.allows_multiple_values", "expected boolean")
        for attr in ("range_category", "subproperty_of", "display_pattern"):
            value = getattr(self, attr)
            if value is not None:
                object.__setattr__(self, attr, _as_name(value, f"{path}.{attr}"))
        for attr in ("display_template", "display_type", "input_type"):
            object.__setattr__(self, attr, _as_optional_str(getattr(self, attr), f"{path}.{attr}"))

    @property
    def display(self) -> DisplayConfig:
        """Display configuration chosen by priority: template, pattern, type, default."""
        if self.display_template is not None:
            return TemplateDisplay(self.display_template)
        if self.display_pattern is not None:
            return PatternDisplay(self.display_pattern)
        if self.display_type is not None:
            return BuiltinDisplay(self.display_type)
        return DefaultDisplay()

    @property
    def has_display(self) -> bool:
        return not isinstance(self.display, DefaultDisplay)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, name: str | None = None) -> Property:
        path = f"Property[{name}]" if name is not None else "Property"
        parsed = _expect_object(
            data,
            path,
            required=set() if name is not None else {"name"},
            optional={
                "name",
                "datatype",
                "label",
                "description",
                "allowed_values",
                "allows_multiple_values",
                "range_category",
                "subproperty_of",
                "display_template",
                "display_pattern",
                "display_type",
                "input_type",
            },
        )
        resolved_name = _resolve_entity_name(parsed, name, path)
        allows_multiple = parsed.get("allows_multiple_values", False)
        if not isinstance(allows_multiple, bool):
            _fail(f"{path}.allows_multiple_values", "expected boolean")
        return cls(
            name=resolved_name,
            datatype=parse_datatype(_as_str(parsed.get("datatype", "Text"), f"{path}.datatype")),
            label=_as_optional_str(parsed.get("label"), f"{path}.label"),
            description=_as_optional_str(parsed.get("description"), f"{path}.description"),
            allowed_values=_as_str_tuple(parsed.get("allowed_values", ()), f"{path}.allowed_values"),
            allows_multiple_values=allows_multiple,
            range_category=_as_optional_str(parsed.get("range_category"), f"{path}.range_category"),
            subproperty_of=_as_optional_str(parsed.get("subproperty_of"), f"{path}.subproperty_of"),
            display_template=_as_optional_str(
                parsed.get("display_template"), f"{path}.display_template"
            ),
            display_pattern=_as_optional_str(
                parsed.get("display_pattern"), f"{path}.display_pattern"
            ),
            display_type=_as_optional_str(parsed.get("display_type"), f"{path}.display_type"),
            input_type=_as_optional_str(parsed.get("input_type"), f"{path}.input_type"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {"datatype": str(self.datatype)}
        if self.label is not None and self.label != _label_from_property_name(self.name):
            out["label"] = self.label
        if self.description is not None:
            out["description"] = self.description
        if self.allowed_values:
            out["allowed_values"] = list(self.allowed_values)
        if self.allows_multiple_values:
            out["allows_multiple_values"] = True
        for attr in (
            "range_category",
            "subproperty_of",
            "display_template",
            "display_pattern",
            "display_type",
            "input_type",
        ):
            value = getattr(self, attr)
            if value is not None:
                out[attr] = value
        return out


@dataclass(frozen=True, slots=True)
class Subobject:
    """A repeatable structured group of properties attached to categories."""

    name: str
    label: str | None = None
    description: str | None = None
    required_properties: tuple[str, ...] = ()
    optional_properties: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        name = _as_name(self.name, "Subobject.name")
        path = f"Subobject[{name}]"
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "label", _as_optional_str(self.label, f"{path}.label"))
        object.__setattr__(
            self, "description", _as_optional_str(self.description, f"{path}.description")
        )
        object.__setattr__(
            self,
            "required_properties",
            _as_name_tuple(self.required_properties, f"{path}.required_properties"),
        )
        object.__setattr__(
            self,
            "optional_properties",
            _as_name_tuple(self.optional_properties, f"{path}.optional_properties"),
        )

    @property
    def overlapping_properties(self) -> tuple[str, ...]:
        return _overlap(self.required_properties, self.optional_properties)

    @property
    def all_properties(self) -> tuple[str, ...]:
        return _ordered_union(self.required_properties, self.optional_properties)

    def normalized(self) -> Subobject:
        if not self.overlapping_properties:
            return self
        return Subobject(
            name=self.name,
            label=self.label,
            description=self.description,
            required_properties=self.required_properties,
            optional_properties=_without(self.optional_properties, self.required_properties),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, name: str | None = None) -> Subobject:
        path = f"Subobject[{name}]" if name is not None else "Subobject"
        parsed = _expect_object(
            data,
            path,
            required=set() if name is not None else {"name"},
            optional={"name", "label", "description", "properties"},
        )
        required, optional = _parse_required_optional(parsed.get("properties"), f"{path}.properties")
        return cls(
            name=_resolve_entity_name(parsed, name, path),
            label=_as_optional_str(parsed.get("label"), f"{path}.label"),
            description=_as_optional_str(parsed.get("description"), f"{path}.description"),
            required_properties=required,
            optional_properties=optional,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {}
        if self.label is not None:
            out["label"] = self.label
        if self.description is not None:
            out["description"] = self.description
        properties = _required_optional_dict(self.required_properties, self.optional_properties)
        if properties:
            out["properties"] = properties
        return out


@dataclass(frozen=True, slots=True)
class Category:
    """One authored category declaration, exactly as written."""

    name: str
    parents: tuple[str, ...] = ()
    label: str | None = None
    description: str | None = None
    required_properties: tuple[str, ...] = ()
    optional_properties: tuple[str, ...] = ()
    required_subobjects: tuple[str, ...] = ()
    optional_subobjects: tuple[str, ...] = ()
    display_header: tuple[str, ...] = ()
    display_sections: tuple[Section, ...] = ()
    form_sections: tuple[Section, ...] = ()

    def __post_init__(self) -> None:
        name = _as_name(self.name, "Category.name")
        path = f"Category[{name}]"
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "parents", _as_name_tuple(self.parents, f"{path}.parents"))
        object.__setattr__(self, "label", _as_optional_str(self.label, f"{path}.label"))
        object.__setattr__(
            self, "description", _as_optional_str(self.description, f"{path}.description")
        )
        for attr in (
            "required_properties",
            "optional_properties",
            "required_subobjects",
            "optional_subobjects",
            "display_header",
        ):
            object.__setattr__(self, attr, _as_name_tuple(getattr(self, attr), f"{path}.{attr}"))
        for attr in ("display_sections", "form_sections"):
            object.__setattr__(self, attr, _as_sections(getattr(self, attr), f"{path}.{attr}"))

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else self.name

    @property
    def all_properties(self) -> tuple[str, ...]:
        return _ordered_union(self.required_properties, self.optional_properties)

    @property
    def all_subobjects(self) -> tuple[str, ...]:
        return _ordered_union(self.required_subobjects, self.optional_subobjects)

    @property
    def overlapping_properties(self) -> tuple[str, ...]:
        return _overlap(self.required_properties, self.optional_properties)

    @property
    def overlapping_subobjects(self) -> tuple[str, ...]:
        return _overlap(self.required_subobjects, self.optional_subobjects)

    @property
    def has_display(self) -> bool:
        return bool(self.display_header or self.display_sections)

    def normalized(self) -> Category:
        """Return a copy where names declared both ways are required only."""
        if not self.overlapping_properties and not self.overlapping_subobjects:
            return self
        return self._replace(
            optional_properties=_without(self.optional_properties, self.required_properties),
            optional_subobjects=_without(self.optional_subobjects, self.required_subobjects),
        )

    def merge_with_parent(self, parent: Category) -> Category:
        """Apply this declaration on top of ``parent``'s (already merged) view."""
        required_properties, optional_properties = merge_required_optional(
            parent.required_properties,
            parent.optional_properties,
            self.required_properties,
            self.optional_properties,
        )
        required_subobjects, optional_subobjects = merge_required_optional(
            parent.required_subobjects,
            parent.optional_subobjects,
            self.required_subobjects,
            self.optional_subobjects,
        )
        return self._replace(
            required_properties=required_properties,
            optional_properties=optional_properties,
            required_subobjects=required_subobjects,
            optional_subobjects=optional_subobjects,
            display_header=self.display_header or parent.display_header,
            display_sections=merge_sections(parent.display_sections, self.display_sections),
            form_sections=self.form_sections or parent.form_sections,
        )

    def _replace(self, **changes: Any) -> Category:
        values: dict[str, Any] = {
            "name": self.name,
            "parents": self.parents,
            "label": self.label,
            "description": self.description,
            "required_properties": self.required_properties,
            "optional_properties": self.optional_properties,
            "required_subobjects": self.required_subobjects,
            "optional_subobjects": self.optional_subobjects,
            "display_header": self.display_header,
            "display_sections": self.display_sections,
            "form_sections": self.form_sections,
        }
        values.update(changes)
        return Category(**values)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, name: str | None = None) -> Category:
        path = f"Category[{name}]" if name is not None else "Category"
        parsed = _expect_object(
            data,
            path,
            required=set() if name is not None else {"name"},
            optional={
                "name",
                "parents",
                "label",
                "description",
                "properties",
                "subobjects",
                "display",
                "forms",
            },
        )
        required_properties, optional_properties = _parse_required_optional(
            parsed.get("properties"), f"{path}.properties"
        )
        required_subobjects, optional_subobjects = _parse_required_optional(
            parsed.get("subobjects"), f"{path}.subobjects"
        )

        header: tuple[str, ...] = ()
        display_sections: tuple[Section, ...] = ()
        raw_display = parsed.get("display")
        if raw_display is not None:
            display = _expect_object(
                raw_display, f"{path}.display", required=set(), optional={"header", "sections"}
            )
            header = _as_name_tuple(display.get("header", ()), f"{path}.display.header")
            display_sections = _parse_sections(display.get("sections", ()), f"{path}.display")

        form_sections: tuple[Section, ...] = ()
        raw_forms = parsed.get("forms")
        if raw_forms is not None:
            forms = _expect_object(raw_forms, f"{path}.forms", required=set(), optional={"sections"})
            form_sections = _parse_sections(forms.get("sections", ()), f"{path}.forms")

        return cls(
            name=_resolve_entity_name(parsed, name, path),
            parents=_as_name_tuple(parsed.get("parents", ()), f"{path}.parents"),
            label=_as_optional_str(parsed.get("label"), f"{path}.label"),
            description=_as_optional_str(parsed.get("description"), f"{path}.description"),
            required_properties=required_properties,
            optional_properties=optional_properties,
            required_subobjects=required_subobjects,
            optional_subobjects=optional_subobjects,
            display_header=header,
            display_sections=display_sections,
            form_sections=form_sections,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {}
        if self.parents:
            out["parents"] = list(self.parents)
        if self.label is not None:
            out["label"] = self.label
        if self.description is not None:
            out["description"] = self.description
        properties = _required_optional_dict(self.required_properties, self.optional_properties)
        if properties:
            out["properties"] = properties
        subobjects = _required_optional_dict(self.required_subobjects, self.optional_subobjects)
        if subobjects:
            out["subobjects"] = subobjects
        if self.has_display:
            display: dict[str, JSONValue] = {}
            if self.display_header:
                display["header"] = list(self.display_header)
            if self.display_sections:
                display["sections"] = [section.to_dict() for section in self.display_sections]
            out["display"] = display
        if self.form_sections:
            out["forms"] = {"sections": [section.to_dict() for section in self.form_sections]}
        return out


@dataclass(frozen=True, slots=True)
class Ontology:
    """The full definition set: three name-keyed read-only maps."""

    categories: Mapping[str, Category] = field(default_factory=dict)
    properties: Mapping[str, Property] = field(default_factory=dict)
    subobjects: Mapping[str, Subobject] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "categories", _as_entity_map(self.categories, Category, "Ontology.categories")
        )
        object.__setattr__(
            self, "properties", _as_entity_map(self.properties, Property, "Ontology.properties")
        )
        object.__setattr__(
            self, "subobjects", _as_entity_map(self.subobjects, Subobject, "Ontology.subobjects")
        )

    def normalized(self) -> Ontology:
        """Promote every same-declaration overlap to required."""
        return Ontology(
            categories={name: item.normalized() for name, item in self.categories.items()},
            properties=self.properties,
            subobjects={name: item.normalized() for name, item in self.subobjects.items()},
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Ontology:
        parsed = _expect_object(
            data,
            "Ontology",
            required=set(),
            optional={"categories", "properties", "subobjects"},
        )
        return cls(
            categories={
                key: Category.from_dict(value, name=key)
                for key, value in _as_section_map(parsed.get("categories"), "categories").items()
            },
            properties={
                key: Property.from_dict(value, name=key)
                for key, value in _as_section_map(parsed.get("properties"), "properties").items()
            },
            subobjects={
                key: Subobject.from_dict(value, name=key)
                for key, value in _as_section_map(parsed.get("subobjects"), "subobjects").items()
            },
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "categories": {name: self.categories[name].to_dict() for name in sorted(self.categories)},
            "properties": {name: self.properties[name].to_dict() for name in sorted(self.properties)},
            "subobjects": {name: self.subobjects[name].to_dict() for name in sorted(self.subobjects)},
        }

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


# Effective (inherited) view.


@dataclass(frozen=True, slots=True)
class InheritedItem:
    """A property or subobject in an effective category, with provenance."""

    name: str
    required: bool
    source: str
    required_by: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "name": self.name,
            "required": self.required,
            "source": self.source,
            "required_by": self.required_by,
        }


@dataclass(frozen=True, slots=True)
class EffectiveSection:
    """A merged display section and the category that last extended it."""

    name: str
    properties: tuple[str, ...]
    owner: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {"name": self.name, "properties": list(self.properties), "owner": self.owner}


@dataclass(frozen=True, slots=True)
class EffectiveCategory:
    """Everything a category has once inheritance is applied."""

    name: str
    category: Category
    ancestors: tuple[str, ...]
    properties: tuple[InheritedItem, ...]
    subobjects: tuple[InheritedItem, ...]
    display_header: tuple[str, ...] = ()
    sections: tuple[EffectiveSection, ...] = ()
    form_sections: tuple[Section, ...] = ()

    @property
    def required_properties(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.properties if item.required)

    @property
    def optional_properties(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.properties if not item.required)

    @property
    def required_subobjects(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.subobjects if item.required)

    @property
    def optional_subobjects(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.subobjects if not item.required)

    def property_item(self, name: str) -> InheritedItem | None:
        for item in self.properties:
            if item.name == name:
                return item
        return None

    def subobject_item(self, name: str) -> InheritedItem | None:
        for item in self.subobjects:
            if item.name == name:
                return item
        return None

    def is_required(self, name: str) -> bool:
        item = self.property_item(name)
        return item is not None and item.required

    def as_category(self) -> Category:
        """Flatten into a plain declaration carrying the merged sets."""
        return Category(
            name=self.name,
            parents=self.category.parents,
            label=self.category.label,
            description=self.category.description,
            required_properties=self.required_properties,
            optional_properties=self.optional_properties,
            required_subobjects=self.required_subobjects,
            optional_subobjects=self.optional_subobjects,
            display_header=self.display_header,
            display_sections=tuple(
                Section(section.name, section.properties) for section in self.sections
            ),
            form_sections=self.form_sections,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "name": self.name,
            "ancestors": list(self.ancestors),
            "properties": [item.to_dict() for item in self.properties],
            "subobjects": [item.to_dict() for item in self.subobjects],
            "display_header": list(self.display_header),
            "sections": [section.to_dict() for section in self.sections],
            "form_sections": [section.to_dict() for section in self.form_sections],
        }


# Merge rules shared by Category.merge_with_parent and the resolver.


def merge_required_optional(
    parent_required: Sequence[str],
    parent_optional: Sequence[str],
    child_required: Sequence[str],
    child_optional: Sequence[str],
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Union both sets; anything required on either side stays required."""
    required = _ordered_union(parent_required, child_required)
    optional = _without(_ordered_union(parent_optional, child_optional), required)
    return required, optional


def merge_sections(
    inherited: Sequence[Section], own: Sequence[Section]
) -> tuple[Section, ...]:
    """Merge display sections by name; new child sections go last."""
    merged: dict[str, list[str]] = {}
    for section in inherited:
        merged.setdefault(section.name, [])
        _extend_unique(merged[section.name], section.properties)
    for section in own:
        merged.setdefault(section.name, [])
        _extend_unique(merged[section.name], section.properties)
    return tuple(Section(name, tuple(props)) for name, props in merged.items())


def label_from_name(name: str) -> str:
    return _label_from_property_name(name)


# Internal helpers.


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_str(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        _fail(path, "must not be empty")
    return normalized


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    return normalized or None


def _as_name(value: object, path: str) -> str:
    name = _as_str(value, path)
    bad = sorted(char for char in set(name) if char in INVALID_NAME_CHARACTERS)
    if bad:
        _fail(path, f"name {name!r} contains invalid characters: {''.join(bad)}")
    return name


def _as_sequence(value: object, path: str) -> Sequence[object]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes, bytearray)):
        _fail(path, f"expected array, got {type(value).__name__}")
    return value


def _as_name_tuple(value: object, path: str) -> tuple[str, ...]:
    names: list[str] = []
    for index, item in enumerate(_as_sequence(value, path)):
        name = _as_name(item, f"{path}[{index}]")
        if name not in names:
            names.append(name)
    return tuple(names)


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    items: list[str] = []
    for index, item in enumerate(_as_sequence(value, path)):
        text = _as_str(item, f"{path}[{index}]")
        if text not in items:
            items.append(text)
    return tuple(items)


def _as_sections(value: object, path: str) -> tuple[Section, ...]:
    sections: list[Section] = []
    for index, item in enumerate(_as_sequence(value, path)):
        if not isinstance(item, Section):
            _fail(f"{path}[{index}]", f"expected Section, got {type(item).__name__}")
        sections.append(item)
    return tuple(sections)


def _parse_sections(value: object, path: str) -> tuple[Section, ...]:
    sections: list[Section] = []
    for index, item in enumerate(_as_sequence(value, f"{path}.sections")):
        item_path = f"{path}.sections[{index}]"
        sections.append(Section.from_dict(_expect_mapping(item, item_path), item_path))
    return tuple(sections)


def _expect_mapping(value: object, path: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    return value


def _parse_required_optional(
    value: object, path: str
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    if value is None:
        return (), ()
    parsed = _expect_object(value, path, required=set(), optional={"required", "optional"})
    return (
        _as_name_tuple(parsed.get("required", ()), f"{path}.required"),
        _as_name_tuple(parsed.get("optional", ()), f"{path}.optional"),
    )


def _required_optional_dict(
    required: Sequence[str], optional: Sequence[str]
) -> dict[str, JSONValue]:
    out: dict[str, JSONValue] = {}
    if required:
        out["required"] = list(required)
    if optional:
        out["optional"] = list(optional)
    return out


def _resolve_entity_name(parsed: Mapping[str, object], name: str | None, path: str) -> str:
    declared = parsed.get("name")
    if name is None:
        return _as_name(declared, f"{path}.name")
    if declared is not None and _as_str(declared, f"{path}.name") != name.strip():
        _fail(f"{path}.name", f"declared name {declared!r} does not match key {name!r}")
    return _as_name(name, f"{path}.name")


def _as_section_map(value: object, path: str) -> dict[str, Mapping[str, object]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    out: dict[str, Mapping[str, object]] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        if item is None:
            item = {}
        out[key] = _expect_mapping(item, f"{path}.{key}")
    return out


def _as_entity_map(
    value: Mapping[str, TEntity] | Iterable[TEntity],
    entity_type: type[TEntity],
    path: str,
) -> Mapping[str, TEntity]:
    items: dict[str, TEntity] = {}
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(item, entity_type):
                _fail(f"{path}.{key}", f"expected {entity_type.__name__}")
            if key != item.name:
                _fail(f"{path}.{key}", f"key does not match entity name {item.name!r}")
            items[key] = item
    else:
        for index, item in enumerate(value):
            if not isinstance(item, entity_type):
                _fail(f"{path}[{index}]", f"expected {entity_type.__name__}")
            if item.name in items:
                _fail(f"{path}[{index}]", f"duplicate name {item.name!r}")
            items[item.name] = item
    return MappingProxyType(items)


def _label_from_property_name(name: str) -> str:
    stripped = _PROPERTY_PREFIX.sub("", name, count=1) or name
    spaced = stripped.replace("_", " ").strip()
    if not spaced:
        return name
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def _ordered_union(*groups: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    for group in groups:
        _extend_unique(out, group)
    return tuple(out)


def _extend_unique(target: list[str], values: Iterable[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def _overlap(required: Sequence[str], optional: Sequence[str]) -> tuple[str, ...]:
    required_set = set(required)
    return tuple(name for name in optional if name in required_set)


def _without(values: Sequence[str], excluded: Iterable[str]) -> tuple[str, ...]:
    excluded_set = set(excluded)
    return tuple(value for value in values if value not in excluded_set)


__all__ = [
    "BuiltinDatatype",
    "BuiltinDisplay",
    "Category",
    "CustomDatatype",
    "Datatype",
    "DefaultDisplay",
    "DisplayConfig",
    "EffectiveCategory",
    "EffectiveSection",
    "InheritedItem",
    "JSONValue",
    "Ontology",
    "PatternDisplay",
    "Property",
    "Section",
    "Subobject",
    "TemplateDisplay",
    "is_builtin_datatype",
    "label_from_name",
    "merge_required_optional",
    "merge_sections",
    "parse_datatype",
]
