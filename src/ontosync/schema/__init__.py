"""Inheritance resolution, validation, ordering, and comparison over definition sets."""

from ontosync.schema.comparer import SchemaComparer, SchemaDiff
from ontosync.schema.graph import InheritanceGraph
from ontosync.schema.hierarchy import build_hierarchy, build_virtual_hierarchy
from ontosync.schema.inheritance import InheritanceResolver, Linearization, Resolution
from ontosync.schema.inspector import OntologyInspector
from ontosync.schema.multi_category import MultiCategoryResolver, ResolvedPropertySet
from ontosync.schema.ordering import ApplicationPlan, DependencyOrderer, order_categories
from ontosync.schema.validator import Finding, SchemaValidator, Severity, ValidationResult

__all__ = [
    "ApplicationPlan",
    "DependencyOrderer",
    "Finding",
    "InheritanceGraph",
    "InheritanceResolver",
    "Linearization",
    "MultiCategoryResolver",
    "OntologyInspector",
    "Resolution",
    "ResolvedPropertySet",
    "SchemaComparer",
    "SchemaDiff",
    "SchemaValidator",
    "Severity",
    "ValidationResult",
    "build_hierarchy",
    "build_virtual_hierarchy",
    "order_categories",
]
