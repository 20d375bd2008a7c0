"""Read-only overview of a definition set and of its generated artifacts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from ontosync.domain.models import JSONValue, Ontology
from ontosync.schema.validator import (
    Finding,
    SchemaValidator,
    ValidationResult,
    warning,
)
from ontosync.state.hashing import Content
from ontosync.state.tracker import ArtifactClassification, StateTracker


@dataclass(frozen=True, slots=True)
class OntologyStatistics:
    categories: int
    properties: int
    subobjects: int
    categories_with_parents: int
    categories_with_properties: int
    categories_with_subobjects: int
    categories_with_display: int
    categories_with_forms: int

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "categories": self.categories,
            "properties": self.properties,
            "subobjects": self.subobjects,
            "categories_with_parents": self.categories_with_parents,
            "categories_with_properties": self.categories_with_properties,
            "categories_with_subobjects": self.categories_with_subobjects,
            "categories_with_display": self.categories_with_display,
            "categories_with_forms": self.categories_with_forms,
        }


@dataclass(frozen=True, slots=True)
class InspectionReport:
    validation: ValidationResult
    statistics: OntologyStatistics
    modified_artifacts: tuple[str, ...] = ()

    @property
    def findings(self) -> tuple[Finding, ...]:
        drift = tuple(
            warning(
                "state.external_modification",
                f"Artifact '{key}' was modified outside ontosync since it was generated",
                key,
                suggestion="Review the edit before regenerating this artifact",
            )
            for key in self.modified_artifacts
        )
        return self.validation.findings + drift

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "validation": self.validation.to_dict(),
            "statistics": self.statistics.to_dict(),
            "modified_artifacts": list(self.modified_artifacts),
        }


class OntologyInspector:
    """Combines validation, statistics, and artifact drift for one definition set."""

    def __init__(
        self,
        ontology: Ontology,
        *,
        validator: SchemaValidator | None = None,
        tracker: StateTracker | None = None,
    ) -> None:
        self._ontology = ontology
        self._validator = validator if validator is not None else SchemaValidator()
        self._tracker = tracker

    def statistics(self) -> OntologyStatistics:
        categories = tuple(self._ontology.categories.values())
        return OntologyStatistics(
            categories=len(categories),
            properties=len(self._ontology.properties),
            subobjects=len(self._ontology.subobjects),
            categories_with_parents=sum(1 for item in categories if item.parents),
            categories_with_properties=sum(1 for item in categories if item.all_properties),
            categories_with_subobjects=sum(1 for item in categories if item.all_subobjects),
            categories_with_display=sum(1 for item in categories if item.has_display),
            categories_with_forms=sum(1 for item in categories if item.form_sections),
        )

    def inspect(self, artifact_contents: Mapping[str, Content] | None = None) -> InspectionReport:
        """
        Validate the definitions and, with a tracker, check artifacts for drift.

        Any externally modified artifact marks the tracker dirty.
        """
        modified: list[str] = []
        if self._tracker is not None and artifact_contents:
            for key in sorted(artifact_contents):
                outcome = self._tracker.observe(key, artifact_contents[key])
                if outcome is ArtifactClassification.CHANGED_EXTERNALLY:
                    modified.append(key)
            if modified:
                self._tracker.mark_dirty()
        return InspectionReport(
            validation=self._validator.validate(self._ontology),
            statistics=self.statistics(),
            modified_artifacts=tuple(modified),
        )


__all__ = ["InspectionReport", "OntologyInspector", "OntologyStatistics"]
