"""Unit tests for field-level definition set comparison."""

from __future__ import annotations

from ontosync.domain.models import Category, Ontology, Property, Section, Subobject
from ontosync.schema.comparer import FieldChange, SchemaComparer


def _old() -> Ontology:
    return Ontology(
        categories=[
            Category("Person", required_properties=("name",), optional_properties=("email", "phone")),
            Category("Retired"),
            Category(
                "Faculty",
                parents=("Person", "Employee"),
                display_sections=(Section("Contact", ("email", "office")),),
            ),
            Category("Employee"),
        ],
        properties=[Property("name"), Property("email", datatype="Text")],
        subobjects=[Subobject("Address", required_properties=("street",))],
    )


def test_identical_sets_have_no_changes() -> None:
    diff = SchemaComparer().compare(_old(), _old())

    assert not diff.has_changes
    assert diff.categories.unchanged == ("Employee", "Faculty", "Person", "Retired")


def test_added_removed_and_modified_are_sorted_by_name() -> None:
    new = Ontology(
        categories=[
            Category("Person", required_properties=("name",), optional_properties=("phone", "email")),
            Category("Student", parents=("Person",)),
            Category("Alumnus", parents=("Person",)),
            Category(
                "Faculty",
                parents=("Person", "Employee"),
                display_sections=(Section("Contact", ("email", "office")),),
            ),
            Category("Employee"),
        ],
        properties=[Property("name"), Property("email", datatype="Email")],
        subobjects=[Subobject("Address", required_properties=("street",))],
    )

    diff = SchemaComparer().compare(new, _old())

    assert diff.has_changes
    assert diff.categories.added == ("Alumnus", "Student")
    assert diff.categories.removed == ("Retired",)
    assert diff.categories.modified == ()
    assert diff.properties.modified[0].name == "email"
    assert diff.properties.modified[0].changes == (
        FieldChange(field="datatype", old="Text", new="Email"),
    )
    assert not diff.subobjects.has_changes


def test_parent_order_and_display_order_are_significant() -> None:
    new = Ontology(
        categories=[
            Category("Person", required_properties=("name",), optional_properties=("email", "phone")),
            Category("Retired"),
            Category(
                "Faculty",
                parents=("Employee", "Person"),
                display_sections=(Section("Contact", ("office", "email")),),
            ),
            Category("Employee"),
        ],
        properties=[Property("name"), Property("email", datatype="Text")],
        subobjects=[Subobject("Address", required_properties=("street",))],
    )

    diff = SchemaComparer().compare(new, _old())

    assert [item.name for item in diff.categories.modified] == ["Faculty"]
    assert diff.categories.modified[0].changed_fields == ("display.sections", "parents")


def test_moving_a_property_from_optional_to_required_is_a_change() -> None:
    old = Ontology(categories=[Category("Person", optional_properties=("email",))])
    new = Ontology(categories=[Category("Person", required_properties=("email",))])

    diff = SchemaComparer().compare(new, old)

    assert diff.categories.modified[0].changed_fields == (
        "properties.optional",
        "properties.required",
    )
    assert diff.to_dict()["categories"]["modified"][0]["name"] == "Person"
