"""Definition types and the errors raised over them."""

from ontosync.domain.errors import (
    CategoryNotFoundError,
    CycleError,
    DanglingReferenceError,
    LinearizationConflictError,
    OntologyError,
    StructuralError,
    StructuralErrorKind,
)
from ontosync.domain.models import (
    BuiltinDatatype,
    Category,
    CustomDatatype,
    EffectiveCategory,
    EffectiveSection,
    InheritedItem,
    Ontology,
    Property,
    Section,
    Subobject,
    parse_datatype,
)

__all__ = [
    "BuiltinDatatype",
    "Category",
    "CategoryNotFoundError",
    "CustomDatatype",
    "CycleError",
    "DanglingReferenceError",
    "EffectiveCategory",
    "EffectiveSection",
    "InheritedItem",
    "LinearizationConflictError",
    "Ontology",
    "OntologyError",
    "Property",
    "Section",
    "StructuralError",
    "StructuralErrorKind",
    "Subobject",
    "parse_datatype",
]
