"""
ontosync — schema validation.

File: src/ontosync/schema/validator.py

Purpose
- Check a whole definition set in one pass and report every problem found,
  as errors (blocking) or warnings (advisory).

What should be included in this file
- Structural checks: cycles (full path), linearization conflicts, and
  references to categories, properties, or subobjects that do not exist.
- Advisory checks: required/optional overlap, unknown datatypes, naming
  conventions with a suggested corrected name, unused or empty definitions.
- Registration of extra checks supplied by callers.

Functional requirements
- Never stop at the first error.
- The errors-only view is derived from the same pass as the combined view.
- Findings are ordered deterministically.
- Overlap inside one declaration is promoted to required in the returned
  definition set, never reported as an error.

Non-functional requirements
- No I/O; no mutation of the input definitions.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

import structlog

from ontosync.config.settings import EngineSettings
from ontosync.domain.errors import (
    CycleError,
    DanglingReferenceError,
    StructuralErrorKind,
    render_path,
)
from ontosync.domain.models import (
    Category,
    CustomDatatype,
    JSONValue,
    Ontology,
    Property,
    Subobject,
)
from ontosync.schema.graph import InheritanceGraph, canonicalize_cycle
from ontosync.schema.inheritance import InheritanceResolver

_CONVENTIONAL_PREFIXES: Final[tuple[str, ...]] = ("Has ",)
_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[_-]+")
_SPACES: Final[re.Pattern[str]] = re.compile(r"\s+")


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Finding:
    """One validation result: what is wrong, how bad it is, and what it concerns."""

    code: str
    severity: Severity
    message: str
    subjects: tuple[str, ...] = ()
    suggestion: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "subjects": list(self.subjects),
        }
        if self.suggestion is not None:
            out["suggestion"] = self.suggestion
        return out


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """All findings of one validation pass plus the normalized definition set."""

    findings: tuple[Finding, ...]
    ontology: Ontology

    @property
    def errors(self) -> tuple[Finding, ...]:
        return tuple(item for item in self.findings if item.severity is Severity.ERROR)

    @property
    def warnings(self) -> tuple[Finding, ...]:
        return tuple(item for item in self.findings if item.severity is Severity.WARNING)

    @property
    def has_errors(self) -> bool:
        return any(item.severity is Severity.ERROR for item in self.findings)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def by_code(self, code: str) -> tuple[Finding, ...]:
        return tuple(item for item in self.findings if item.code == code)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "valid": self.is_valid,
            "errors": [item.to_dict() for item in self.errors],
            "warnings": [item.to_dict() for item in self.warnings],
        }


FindingCheck = Callable[[Ontology], Iterable[Finding]]


def error(code: str, message: str, *subjects: str, suggestion: str | None = None) -> Finding:
    return Finding(code, Severity.ERROR, message, tuple(subjects), suggestion)


def warning(code: str, message: str, *subjects: str, suggestion: str | None = None) -> Finding:
    return Finding(code, Severity.WARNING, message, tuple(subjects), suggestion)


class SchemaValidator:
    """Single-pass validator over an :class:`Ontology`."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self._checks: list[FindingCheck] = []
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def register_check(self, check: FindingCheck) -> None:
        """Run ``check`` after the built-in checks on every validation."""
        self._checks.append(check)

    def validate(self, ontology: Ontology) -> ValidationResult:
        findings: list[Finding] = []
        findings.extend(self._check_inheritance(ontology))
        for name in sorted(ontology.categories):
            findings.extend(self._check_category(ontology.categories[name], ontology))
        property_prefix = self._property_prefix(ontology.properties)
        used = _used_property_names(ontology)
        for name in sorted(ontology.properties):
            findings.extend(
                self._check_property(ontology.properties[name], ontology, property_prefix, used)
            )
        findings.extend(_check_display_patterns(ontology.properties))
        for name in sorted(ontology.subobjects):
            findings.extend(self._check_subobject(ontology.subobjects[name], ontology))
        for check in self._checks:
            findings.extend(check(ontology))

        result = ValidationResult(findings=tuple(findings), ontology=ontology.normalized())
        self._logger.info(
            "validation_completed",
            categories=len(ontology.categories),
            properties=len(ontology.properties),
            subobjects=len(ontology.subobjects),
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return result

    def validate_errors(self, ontology: Ontology) -> tuple[Finding, ...]:
        """Errors only, taken from a single :meth:`validate` pass."""
        return self.validate(ontology).errors

    def _check_inheritance(self, ontology: Ontology) -> list[Finding]:
        findings: list[Finding] = []
        graph = InheritanceGraph.from_categories(ontology.categories)
        for path in graph.detect_cycles():
            findings.append(
                error(
                    "inheritance.cycle",
                    str(CycleError([path])),
                    *path,
                    suggestion="Remove one of the parent links in the loop",
                )
            )

        resolver = InheritanceResolver(ontology.normalized().categories)
        for problem in resolver.validate_inheritance():
            if problem.kind is not StructuralErrorKind.LINEARIZATION_CONFLICT:
                continue
            findings.append(
                error(
                    "inheritance.conflict",
                    str(problem),
                    *problem.subjects,
                    suggestion="Declare shared parents in the same relative order everywhere",
                )
            )
        return findings

    def _check_category(self, category: Category, ontology: Ontology) -> list[Finding]:
        findings: list[Finding] = []
        name = category.name

        for parent in category.parents:
            if parent not in ontology.categories:
                findings.append(
                    error(
                        "reference.parent",
                        str(DanglingReferenceError(name, parent)),
                        name,
                        parent,
                        suggestion=(
                            f"Add '{parent}' to the categories or remove it from the parents"
                        ),
                    )
                )

        referenced: list[tuple[str, str]] = []
        for prop in category.required_properties:
            referenced.append((prop, "required property"))
        for prop in category.optional_properties:
            referenced.append((prop, "optional property"))
        for prop in category.display_header:
            referenced.append((prop, "display header property"))
        for section in category.display_sections:
            for prop in section.properties:
                referenced.append((prop, f"display section '{section.name}' property"))
        for section in category.form_sections:
            for prop in section.properties:
                referenced.append((prop, f"form section '{section.name}' property"))
        findings.extend(_missing_properties(f"Category '{name}'", name, referenced, ontology))

        for kind, names in (
            ("required", category.required_subobjects),
            ("optional", category.optional_subobjects),
        ):
            for subobject in names:
                if subobject in ontology.subobjects:
                    continue
                findings.append(
                    error(
                        "reference.subobject",
                        f"Category '{name}' references nonexistent {kind} subobject '{subobject}'",
                        name,
                        subobject,
                        suggestion=(
                            f"Add '{subobject}' to the subobjects or remove it from this category"
                        ),
                    )
                )

        for prop in category.overlapping_properties:
            findings.append(
                warning(
                    "overlap.property",
                    (
                        f"Category '{name}' lists property '{prop}' as both required and "
                        "optional; promoted to required"
                    ),
                    name,
                    prop,
                    suggestion="Remove it from the optional list",
                )
            )
        for subobject in category.overlapping_subobjects:
            findings.append(
                warning(
                    "overlap.subobject",
                    (
                        f"Category '{name}' lists subobject '{subobject}' as both required and "
                        "optional; promoted to required"
                    ),
                    name,
                    subobject,
                    suggestion="Remove it from the optional list",
                )
            )

        if self._settings.check_separators:
            findings.extend(_separator_finding("category", name))

        if (
            self._settings.warn_empty_categories
            and not category.parents
            and not category.all_properties
            and not category.all_subobjects
        ):
            findings.append(
                warning(
                    "usage.empty_category",
                    f"Category '{name}' defines no properties, subobjects, or parents",
                    name,
                )
            )
        return findings

    def _check_property(
        self,
        prop: Property,
        ontology: Ontology,
        property_prefix: str | None,
        used: set[str],
    ) -> list[Finding]:
        findings: list[Finding] = []
        name = prop.name
        datatype = prop.datatype

        if isinstance(datatype, CustomDatatype) and not self._settings.accepts_datatype(
            datatype.tag
        ):
            findings.append(
                warning(
                    "datatype.unknown",
                    f"Property '{name}' uses unknown datatype '{datatype.tag}'",
                    name,
                    datatype.tag,
                )
            )
            if not datatype.is_sanitized:
                findings.append(
                    warning(
                        "datatype.unsanitized",
                        (
                            f"Property '{name}' datatype '{datatype.tag}' contains characters "
                            "outside letters, digits, spaces, '_' and '-'"
                        ),
                        name,
                        datatype.tag,
                    )
                )

        if prop.range_category is not None and prop.range_category not in ontology.categories:
            findings.append(
                error(
                    "reference.category",
                    f"Property '{name}' has nonexistent range category '{prop.range_category}'",
                    name,
                    prop.range_category,
                )
            )
        referenced: list[tuple[str, str]] = []
        if prop.subproperty_of is not None:
            referenced.append((prop.subproperty_of, "parent property"))
        if prop.display_pattern is not None:
            referenced.append((prop.display_pattern, "display pattern property"))
        findings.extend(_missing_properties(f"Property '{name}'", name, referenced, ontology))

        if property_prefix is not None:
            suggestion = _prefixed_name(name, property_prefix)
            if suggestion is not None:
                findings.append(
                    warning(
                        "naming.property_prefix",
                        (
                            f"Property '{name}' does not follow the "
                            f"'{property_prefix.strip()}' prefix convention"
                        ),
                        name,
                        suggestion=suggestion,
                    )
                )

        if self._settings.warn_unused_properties and name not in used:
            findings.append(
                warning(
                    "usage.unused_property",
                    f"Property '{name}' is not used by any category or subobject",
                    name,
                )
            )
        return findings

    def _check_subobject(self, subobject: Subobject, ontology: Ontology) -> list[Finding]:
        name = subobject.name
        referenced = [(prop, "required property") for prop in subobject.required_properties]
        referenced.extend((prop, "optional property") for prop in subobject.optional_properties)
        findings = _missing_properties(f"Subobject '{name}'", name, referenced, ontology)

        for prop in subobject.overlapping_properties:
            findings.append(
                warning(
                    "overlap.property",
                    (
                        f"Subobject '{name}' lists property '{prop}' as both required and "
                        "optional; promoted to required"
                    ),
                    name,
                    prop,
                    suggestion="Remove it from the optional list",
                )
            )
        if self._settings.check_separators:
            findings.extend(_separator_finding("subobject", name))
        return findings

    def _property_prefix(self, properties: Mapping[str, Property]) -> str | None:
        if self._settings.property_prefix:
            return self._settings.property_prefix
        return _dominant_prefix(properties)


def _missing_properties(
    owner_label: str,
    owner: str,
    referenced: Iterable[tuple[str, str]],
    ontology: Ontology,
) -> list[Finding]:
    findings: list[Finding] = []
    reported: set[str] = set()
    for prop, role in referenced:
        if prop in ontology.properties or prop in reported:
            continue
        reported.add(prop)
        findings.append(
            error(
                "reference.property",
                f"{owner_label} references nonexistent {role} '{prop}'",
                owner,
                prop,
                suggestion=f"Add '{prop}' to the properties or remove the reference",
            )
        )
    return findings


def _separator_finding(kind: str, name: str) -> list[Finding]:
    if not _SEPARATORS.search(name):
        return []
    suggestion = _SPACES.sub(" ", _SEPARATORS.sub(" ", name)).strip()
    return [
        warning(
            f"naming.{kind}_separator",
            (
                f"{kind.capitalize()} '{name}' contains underscores or hyphens; "
                "spaces are recommended"
            ),
            name,
            suggestion=suggestion,
        )
    ]


def _dominant_prefix(properties: Mapping[str, Property]) -> str | None:
    names = list(properties)
    if len(names) < 2:
        return None
    for prefix in _CONVENTIONAL_PREFIXES:
        matching = sum(1 for name in names if name.startswith(prefix))
        if matching >= 2 and matching * 2 > len(names):
            return prefix
    return None


def _prefixed_name(name: str, prefix: str) -> str | None:
    """Corrected name when ``name`` deviates from ``prefix``, else ``None``."""
    if name.startswith(prefix):
        return None
    stem = prefix.rstrip(" _")
    variant = re.match(rf"^{re.escape(stem)}[ _]+", name, re.IGNORECASE)
    rest = name[variant.end() :] if variant is not None else name
    rest = rest.replace("_", " ").strip() if prefix.endswith(" ") else rest.strip()
    if not rest:
        return None
    return f"{prefix}{rest}"


def _used_property_names(ontology: Ontology) -> set[str]:
    used: set[str] = set()
    for category in ontology.categories.values():
        used.update(category.all_properties)
        used.update(category.display_header)
        for section in (*category.display_sections, *category.form_sections):
            used.update(section.properties)
    for subobject in ontology.subobjects.values():
        used.update(subobject.all_properties)
    for prop in ontology.properties.values():
        if prop.subproperty_of is not None:
            used.add(prop.subproperty_of)
        if prop.display_pattern is not None:
            used.add(prop.display_pattern)
    return used


def _check_display_patterns(properties: Mapping[str, Property]) -> list[Finding]:
    cycles: set[tuple[str, ...]] = set()
    for start in sorted(properties):
        trail = [start]
        current = properties[start]
        while current.display_pattern is not None and current.display_pattern in properties:
            target = current.display_pattern
            if target in trail:
                loop = (*trail[trail.index(target) :], target)
                cycles.add(canonicalize_cycle(loop))
                break
            trail.append(target)
            current = properties[target]
    return [
        warning(
            "display.pattern_cycle",
            f"Display patterns reference each other in a loop: {render_path(path)}",
            *path,
            suggestion="Give one property in the loop a template or display type",
        )
        for path in sorted(cycles)
    ]


__all__ = [
    "Finding",
    "FindingCheck",
    "SchemaValidator",
    "Severity",
    "ValidationResult",
    "error",
    "warning",
]
