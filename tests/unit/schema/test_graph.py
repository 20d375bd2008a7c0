"""Unit tests for schema.graph."""

from __future__ import annotations

import random

import pytest

from ontosync.domain.errors import CycleError
from ontosync.domain.models import Category
from ontosync.schema.graph import InheritanceGraph, canonicalize_cycle


def _categories(*items: Category) -> dict[str, Category]:
    return {item.name: item for item in items}


def test_topological_sort_puts_parents_first_with_name_tiebreak() -> None:
    graph = InheritanceGraph.from_categories(
        _categories(
            Category("Person"),
            Category("Faculty", parents=("Employee",)),
            Category("Employee", parents=("Person",)),
            Category("Animal"),
            Category("Student", parents=("Person",)),
        )
    )

    assert graph.topological_sort() == ("Animal", "Person", "Employee", "Faculty", "Student")


def test_two_node_cycle_follows_parent_links() -> None:
    graph = InheritanceGraph.from_categories(
        _categories(Category("A", parents=("B",)), Category("B", parents=("A",)))
    )

    assert graph.detect_cycles() == (("A", "B", "A"),)
    with pytest.raises(CycleError) as error:
        graph.topological_sort()
    assert str(error.value) == "Circular inheritance detected: A → B → A"


def test_three_node_cycle_reports_full_path() -> None:
    graph = InheritanceGraph.from_categories(
        _categories(
            Category("A", parents=("B",)),
            Category("B", parents=("C",)),
            Category("C", parents=("A",)),
            Category("D", parents=("C",)),
        )
    )

    assert graph.detect_cycles() == (("A", "B", "C", "A"),)


def test_self_parent_is_a_cycle() -> None:
    graph = InheritanceGraph.from_categories(_categories(Category("Loop", parents=("Loop",))))

    assert graph.detect_cycles() == (("Loop", "Loop"),)


def test_missing_parents_are_skipped_unless_requested() -> None:
    categories = _categories(Category("Faculty", parents=("Staff",)))

    assert InheritanceGraph.from_categories(categories).nodes == ("Faculty",)
    with_missing = InheritanceGraph.from_categories(categories, include_missing=True)
    assert with_missing.nodes == ("Faculty", "Staff")
    assert with_missing.parents("Faculty") == ("Staff",)


def test_queries_and_serialization_are_deterministic() -> None:
    graph = InheritanceGraph(
        nodes=("Student", "Agent"),
        edges=(
            ("Agent", "Person"),
            ("Person", "Student"),
            ("Person", "Employee"),
            ("Employee", "Faculty"),
        ),
    )

    assert graph.roots() == ("Agent",)
    assert graph.children("Person") == ("Employee", "Student")
    assert graph.ancestors("Faculty") == ("Agent", "Employee", "Person")
    assert graph.descendants("Person") == ("Employee", "Faculty", "Student")

    payload = graph.serialize()
    assert payload == {
        "schema_version": 1,
        "nodes": ["Agent", "Employee", "Faculty", "Person", "Student"],
        "edges": [
            ["Agent", "Person"],
            ["Employee", "Faculty"],
            ["Person", "Employee"],
            ["Person", "Student"],
        ],
    }
    assert InheritanceGraph.deserialize(payload).serialize() == payload


def test_deserialize_rejects_unknown_schema_version() -> None:
    with pytest.raises(ValueError, match="schema version"):
        InheritanceGraph.deserialize({"schema_version": 99, "nodes": [], "edges": []})


def test_canonicalize_cycle_rotates_to_smallest_name() -> None:
    assert canonicalize_cycle(("C", "A", "B", "C")) == ("A", "B", "C", "A")
    with pytest.raises(ValueError):
        canonicalize_cycle(("A",))


def test_seeded_random_hierarchy_sorts_every_parent_first() -> None:
    rng = random.Random(20_261_017)
    names = [f"Category {index:03d}" for index in range(300)]
    categories: dict[str, Category] = {}
    for index, name in enumerate(names):
        parent_count = rng.randint(0, min(index, 3))
        parents = tuple(rng.sample(names[:index], parent_count)) if parent_count else ()
        categories[name] = Category(name, parents=parents)

    order = InheritanceGraph.from_categories(categories).topological_sort()
    position = {name: index for index, name in enumerate(order)}

    assert len(order) == len(names)
    for name, category in categories.items():
        for parent in category.parents:
            assert position[parent] < position[name]
