"""Generated-artifact fingerprints and drift detection."""

from ontosync.state.hashing import HashMode, hash_content, hash_schema
from ontosync.state.tracker import (
    ArtifactClassification,
    ArtifactState,
    ExternalModificationNotice,
    RegenerationCheck,
    StateSnapshot,
    StateTracker,
)

__all__ = [
    "ArtifactClassification",
    "ArtifactState",
    "ExternalModificationNotice",
    "HashMode",
    "RegenerationCheck",
    "StateSnapshot",
    "StateTracker",
    "hash_content",
    "hash_schema",
]
