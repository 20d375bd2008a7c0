"""Stable constants shared across the ontology engine."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
STATE_SNAPSHOT_SCHEMA_VERSION: Final[int] = 1
INHERITANCE_GRAPH_SCHEMA_VERSION: Final[int] = 1

# Artifact hashing.
HASH_ALGORITHM: Final[str] = "sha256"
HASH_PREFIX: Final[str] = f"{HASH_ALGORITHM}:"

# Characters a category, property, or subobject name may never contain.
INVALID_NAME_CHARACTERS: Final[frozenset[str]] = frozenset("<>{}|#")

# Rendering of inheritance paths in messages, e.g. "A → B → A".
PATH_SEPARATOR: Final[str] = " → "

DEFAULT_CONFIG_FILE: Final[str] = "ontosync.toml"
ENV_PREFIX: Final[str] = "ONTOSYNC_"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "HASH_ALGORITHM",
    "HASH_PREFIX",
    "INHERITANCE_GRAPH_SCHEMA_VERSION",
    "INVALID_NAME_CHARACTERS",
    "PATH_SEPARATOR",
    "STATE_SNAPSHOT_SCHEMA_VERSION",
]
