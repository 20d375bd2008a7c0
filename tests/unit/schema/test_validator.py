"""
ontosync — unit tests for schema validation

File: tests/unit/schema/test_validator.py

Purpose
- Validate single-pass collection of errors and warnings over a definition set.

What this test file should cover
- Structural errors: cycles, dangling parents, conflicts, missing references.
- Overlap promotion reported as a warning, never an error.
- Naming, datatype, and usage warnings with suggestions.
- Settings and registered checks.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from ontosync.config.settings import EngineSettings
from ontosync.domain.models import Category, Ontology, Property, Section, Subobject
from ontosync.schema.validator import Finding, SchemaValidator, Severity, warning

FIXTURE = Path(__file__).resolve().parents[2] / "fixtures" / "ontology.yaml"


def _fixture() -> Ontology:
    with FIXTURE.open(encoding="utf-8") as handle:
        return Ontology.from_dict(yaml.safe_load(handle))


def _codes(findings: tuple[Finding, ...]) -> list[str]:
    return [finding.code for finding in findings]


def test_fixture_is_clean() -> None:
    result = SchemaValidator().validate(_fixture())

    assert result.is_valid
    assert result.findings == ()


def test_person_faculty_promotion_produces_no_findings() -> None:
    ontology = Ontology(
        categories=[
            Category("Person", optional_properties=("email",)),
            Category("Faculty", parents=("Person",), required_properties=("email",)),
        ],
        properties=[Property("email", datatype="Email")],
    )

    result = SchemaValidator().validate(ontology)

    assert result.findings == ()


def test_same_declaration_overlap_is_one_warning_and_promoted() -> None:
    ontology = Ontology(
        categories=[
            Category("X", required_properties=("title",), optional_properties=("title",))
        ],
        properties=[Property("title")],
    )

    result = SchemaValidator().validate(ontology)

    assert result.errors == ()
    assert _codes(result.warnings) == ["overlap.property"]
    assert result.warnings[0].subjects == ("X", "title")
    assert result.ontology.categories["X"].required_properties == ("title",)
    assert result.ontology.categories["X"].optional_properties == ()


def test_two_node_cycle_reported_with_path() -> None:
    ontology = Ontology(
        categories=[
            Category("A", parents=("B",), optional_properties=("p",)),
            Category("B", parents=("A",), optional_properties=("p",)),
        ],
        properties=[Property("p")],
    )

    result = SchemaValidator().validate(ontology)

    assert _codes(result.errors) == ["inheritance.cycle"]
    assert result.errors[0].message == "Circular inheritance detected: A → B → A"
    assert result.errors[0].subjects == ("A", "B", "A")


def test_three_node_cycle_reported_once() -> None:
    ontology = Ontology(
        categories=[
            Category("A", parents=("B",)),
            Category("B", parents=("C",)),
            Category("C", parents=("A",)),
        ]
    )

    errors = SchemaValidator().validate_errors(ontology)

    assert _codes(errors) == ["inheritance.cycle"]
    assert "A → B → C → A" in errors[0].message


def test_dangling_parent_names_category_and_parent() -> None:
    ontology = Ontology(
        categories=[Category("Faculty", parents=("Staff",), optional_properties=("p",))],
        properties=[Property("p")],
    )

    errors = SchemaValidator().validate_errors(ontology)

    assert _codes(errors) == ["reference.parent"]
    assert errors[0].message == "Category 'Faculty' references nonexistent parent 'Staff'"
    assert errors[0].subjects == ("Faculty", "Staff")


def test_linearization_conflict_is_an_error() -> None:
    ontology = Ontology(
        categories=[
            Category("X", optional_properties=("p",)),
            Category("Y", optional_properties=("p",)),
            Category("A", parents=("X", "Y")),
            Category("B", parents=("Y", "X")),
            Category("Z", parents=("A", "B")),
        ],
        properties=[Property("p")],
    )

    errors = SchemaValidator().validate_errors(ontology)

    assert _codes(errors) == ["inheritance.conflict"]
    assert errors[0].subjects == ("Z", "X", "Y")


def test_all_problems_are_collected_in_one_pass() -> None:
    ontology = Ontology(
        categories=[
            Category(
                "Person",
                parents=("Agent",),
                required_properties=("Has name",),
                optional_subobjects=("Address",),
                display_sections=(Section("Contact", ("Has phone",)),),
            ),
        ],
        properties=[Property("Has name", range_category="Organization")],
        subobjects=[Subobject("Location", required_properties=("Has city",))],
    )

    result = SchemaValidator().validate(ontology)

    assert sorted(_codes(result.errors)) == [
        "reference.category",
        "reference.parent",
        "reference.property",
        "reference.property",
        "reference.subobject",
    ]
    missing = {finding.subjects for finding in result.by_code("reference.property")}
    assert missing == {("Person", "Has phone"), ("Location", "Has city")}


def test_unknown_and_unsanitized_datatypes_warn() -> None:
    ontology = Ontology(
        categories=[Category("Thing", optional_properties=("Has formula", "Has blob"))],
        properties=[
            Property("Has formula", datatype="Chemical formula"),
            Property("Has blob", datatype="Blob<raw>"),
        ],
    )

    result = SchemaValidator().validate(ontology)

    assert result.is_valid
    assert _codes(result.warnings) == ["datatype.unknown", "datatype.unsanitized", "datatype.unknown"]

    settings = EngineSettings(extra_datatypes=("chemical formula", "Blob<raw>"))
    assert SchemaValidator(settings).validate(ontology).findings == ()


def test_property_prefix_inferred_from_majority() -> None:
    ontology = Ontology(
        categories=[
            Category(
                "Person",
                optional_properties=("Has name", "Has email", "Has office", "has_phone", "age"),
            )
        ],
        properties=[
            Property("Has name"),
            Property("Has email"),
            Property("Has office"),
            Property("has_phone"),
            Property("age"),
        ],
    )

    findings = SchemaValidator().validate(ontology).by_code("naming.property_prefix")

    suggestions = {finding.subjects[0]: finding.suggestion for finding in findings}
    assert suggestions == {"has_phone": "Has phone", "age": "Has age"}


def test_property_prefix_not_inferred_without_majority() -> None:
    ontology = Ontology(
        categories=[Category("Person", optional_properties=("Has name", "email", "phone"))],
        properties=[Property("Has name"), Property("email"), Property("phone")],
    )

    assert SchemaValidator().validate(ontology).by_code("naming.property_prefix") == ()
    forced = SchemaValidator(EngineSettings(property_prefix="Has ")).validate(ontology)
    assert len(forced.by_code("naming.property_prefix")) == 2


def test_separator_warnings_suggest_spaces() -> None:
    ontology = Ontology(
        categories=[Category("Research_group", optional_subobjects=("postal-address",))],
        subobjects=[Subobject("postal-address")],
    )

    result = SchemaValidator().validate(ontology)

    category = result.by_code("naming.category_separator")
    subobject = result.by_code("naming.subobject_separator")
    assert [finding.suggestion for finding in category] == ["Research group"]
    assert [finding.suggestion for finding in subobject] == ["postal address"]
    assert not SchemaValidator(EngineSettings(check_separators=False)).validate(ontology).findings


def test_usage_warnings_can_be_disabled() -> None:
    ontology = Ontology(categories=[Category("Empty")], properties=[Property("Orphan")])

    result = SchemaValidator().validate(ontology)
    assert sorted(_codes(result.warnings)) == ["usage.empty_category", "usage.unused_property"]

    quiet = SchemaValidator(
        EngineSettings(warn_unused_properties=False, warn_empty_categories=False)
    )
    assert quiet.validate(ontology).findings == ()


def test_display_pattern_loop_warns() -> None:
    ontology = Ontology(
        categories=[Category("Page", optional_properties=("a", "b"))],
        properties=[Property("a", display_pattern="b"), Property("b", display_pattern="a")],
    )

    findings = SchemaValidator().validate(ontology).by_code("display.pattern_cycle")

    assert len(findings) == 1
    assert findings[0].subjects == ("a", "b", "a")
    assert findings[0].severity is Severity.WARNING


def test_registered_checks_run_after_built_in_checks() -> None:
    validator = SchemaValidator()
    validator.register_check(
        lambda ontology: [warning("custom.count", f"{len(ontology.categories)} categories")]
    )

    result = validator.validate(_fixture())

    assert _codes(result.findings) == ["custom.count"]
    assert result.findings[0].message == "6 categories"


def test_findings_are_deterministic_and_serializable() -> None:
    ontology = Ontology(
        categories=[
            Category("B", parents=("Missing",), optional_properties=("x",)),
            Category("A", parents=("Missing",), optional_properties=("y",)),
        ]
    )

    first = SchemaValidator().validate(ontology)
    second = SchemaValidator().validate(ontology)

    assert first.findings == second.findings
    assert first.to_dict()["valid"] is False
    assert [finding.subjects[0] for finding in first.errors][:2] == ["A", "A"]
