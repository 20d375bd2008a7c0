"""
ontosync — generated-artifact state tracking.

File: src/ontosync/state/tracker.py

Purpose
- Remember the fingerprint of every artifact the engine generated so that a
  later run can tell engine changes apart from hand edits.

Functional requirements
- Recording replaces the previous entry for a key.
- Classification distinguishes unknown, unchanged, changed-by-system, and
  changed-externally artifacts.
- Snapshots serialize to canonical JSON and load back losslessly, including
  the hash mode their fingerprints were computed with.

Non-functional requirements
- Thread-safe; last writer wins per key.
- Persistence (where the snapshot lives) belongs to the caller.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any

import structlog

from ontosync.constants import STATE_SNAPSHOT_SCHEMA_VERSION
from ontosync.domain.models import JSONValue
from ontosync.state.hashing import Content, HashMode, hash_content, is_content_hash

Clock = Callable[[], datetime]


class ArtifactClassification(StrEnum):
    UNKNOWN = "unknown"
    UNCHANGED = "unchanged"
    CHANGED_BY_SYSTEM = "changed_by_system"
    CHANGED_EXTERNALLY = "changed_externally"


@dataclass(frozen=True, slots=True)
class ArtifactState:
    """Last generated fingerprint of one artifact plus the last observed one."""

    key: str
    generated_hash: str
    current_hash: str | None = None
    recorded_at: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise ValueError("ArtifactState.key must be a non-empty string")
        if not is_content_hash(self.generated_hash):
            raise ValueError(f"ArtifactState.generated_hash is not a content hash: {self.key}")
        if self.current_hash is not None and not is_content_hash(self.current_hash):
            raise ValueError(f"ArtifactState.current_hash is not a content hash: {self.key}")

    @property
    def dirty(self) -> bool:
        return self.current_hash is not None and self.current_hash != self.generated_hash

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "generated_hash": self.generated_hash,
            "current_hash": self.current_hash,
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, key: str, data: Mapping[str, object]) -> ArtifactState:
        if not isinstance(data, Mapping):
            raise ValueError(f"artifacts.{key}: expected object")
        generated = data.get("generated_hash")
        current = data.get("current_hash")
        recorded_at = data.get("recorded_at")
        if not isinstance(generated, str):
            raise ValueError(f"artifacts.{key}.generated_hash: expected string")
        if current is not None and not isinstance(current, str):
            raise ValueError(f"artifacts.{key}.current_hash: expected string or null")
        if recorded_at is not None and not isinstance(recorded_at, str):
            raise ValueError(f"artifacts.{key}.recorded_at: expected string or null")
        return cls(
            key=key, generated_hash=generated, current_hash=current, recorded_at=recorded_at
        )


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Persistable tracker state."""

    artifacts: Mapping[str, ArtifactState] = field(default_factory=dict)
    source_schema_hash: str | None = None
    dirty: bool = False
    last_change_at: str | None = None
    generated_at: str | None = None
    hash_mode: HashMode = HashMode.RAW
    schema_version: int = STATE_SNAPSHOT_SCHEMA_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "artifacts",
            MappingProxyType({key: self.artifacts[key] for key in sorted(self.artifacts)}),
        )
        object.__setattr__(self, "hash_mode", HashMode(self.hash_mode))
        if self.schema_version != STATE_SNAPSHOT_SCHEMA_VERSION:
            raise ValueError(
                f"unsupported state snapshot schema_version {self.schema_version}; "
                f"expected {STATE_SNAPSHOT_SCHEMA_VERSION}"
            )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "schema_version": self.schema_version,
            "source_schema_hash": self.source_schema_hash,
            "dirty": self.dirty,
            "last_change_at": self.last_change_at,
            "generated_at": self.generated_at,
            "hash_mode": self.hash_mode.value,
            "artifacts": {key: state.to_dict() for key, state in self.artifacts.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> StateSnapshot:
        if not isinstance(data, Mapping):
            raise ValueError("state snapshot: expected object")
        raw_artifacts = data.get("artifacts", {})
        if not isinstance(raw_artifacts, Mapping):
            raise ValueError("state snapshot.artifacts: expected object")
        schema_version = data.get("schema_version", STATE_SNAPSHOT_SCHEMA_VERSION)
        if isinstance(schema_version, bool) or not isinstance(schema_version, int):
            raise ValueError("state snapshot.schema_version: expected integer")
        dirty = data.get("dirty", False)
        if not isinstance(dirty, bool):
            raise ValueError("state snapshot.dirty: expected boolean")
        # A missing mode means raw.
        hash_mode = data.get("hash_mode", HashMode.RAW.value)
        if not isinstance(hash_mode, str) or hash_mode not in {mode.value for mode in HashMode}:
            raise ValueError(f"state snapshot.hash_mode: unsupported value {hash_mode!r}")
        optional_strings: dict[str, str | None] = {}
        for name in ("source_schema_hash", "last_change_at", "generated_at"):
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"state snapshot.{name}: expected string or null")
            optional_strings[name] = value
        return cls(
            artifacts={
                str(key): ArtifactState.from_dict(str(key), value)
                for key, value in raw_artifacts.items()
            },
            dirty=dirty,
            hash_mode=HashMode(hash_mode),
            schema_version=schema_version,
            **optional_strings,
        )

    @classmethod
    def from_json(cls, text: str) -> StateSnapshot:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"state snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(payload)


@dataclass(frozen=True, slots=True)
class ExternalModificationNotice:
    """An artifact was edited outside the engine since it was generated."""

    key: str
    generated_hash: str
    current_hash: str

    @property
    def message(self) -> str:
        return f"Artifact '{self.key}' was modified outside ontosync since it was generated"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "key": self.key,
            "generated_hash": self.generated_hash,
            "current_hash": self.current_hash,
        }


@dataclass(frozen=True, slots=True)
class RegenerationCheck:
    key: str
    classification: ArtifactClassification
    notice: ExternalModificationNotice | None = None

    @property
    def safe_to_overwrite(self) -> bool:
        return self.notice is None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StateTracker:
    """Thread-safe registry of generated artifact fingerprints."""

    def __init__(
        self,
        snapshot: StateSnapshot | None = None,
        *,
        hash_mode: HashMode | str | None = None,
        clock: Clock | None = None,
        logger: Any | None = None,
    ) -> None:
        requested = HashMode(hash_mode) if hash_mode is not None else None
        if snapshot is None:
            base = StateSnapshot(hash_mode=requested or HashMode.RAW)
        else:
            base = snapshot
            if requested is not None and requested is not base.hash_mode:
                raise ValueError(
                    f"hash_mode {requested.value!r} conflicts with the snapshot's "
                    f"hash_mode {base.hash_mode.value!r}"
                )
        self._hash_mode = base.hash_mode
        self._clock = clock if clock is not None else _utc_now
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._artifacts: dict[str, ArtifactState] = dict(base.artifacts)
        self._source_schema_hash = base.source_schema_hash
        self._dirty = base.dirty
        self._last_change_at = base.last_change_at
        self._generated_at = base.generated_at

    @property
    def hash_mode(self) -> HashMode:
        return self._hash_mode

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def source_schema_hash(self) -> str | None:
        with self._lock:
            return self._source_schema_hash

    def hash(self, content: Content) -> str:
        return hash_content(content, mode=self._hash_mode)

    def get(self, key: str) -> ArtifactState | None:
        with self._lock:
            return self._artifacts.get(key)

    def record(self, key: str, content: Content) -> str:
        """Store the fingerprint of freshly generated content for ``key``."""
        digest = self.hash(content)
        timestamp = self._now()
        with self._lock:
            self._artifacts[key] = ArtifactState(
                key=key, generated_hash=digest, current_hash=digest, recorded_at=timestamp
            )
            self._generated_at = timestamp
        self._logger.debug("artifact_recorded", key=key, hash=digest)
        return digest

    def record_many(self, contents: Mapping[str, Content]) -> dict[str, str]:
        return {key: self.record(key, contents[key]) for key in sorted(contents)}

    def classify(
        self,
        key: str,
        current_content: Content,
        *,
        expected_content: Content | None = None,
    ) -> ArtifactClassification:
        """
        Compare the artifact as it exists now against what was generated.

        ``expected_content`` is the engine's freshly recomputed output; a
        match means the difference came from the engine itself.
        """
        with self._lock:
            state = self._artifacts.get(key)
        if state is None:
            return ArtifactClassification.UNKNOWN
        return self._classify_against(state, self.hash(current_content), expected_content)

    def check_regeneration(
        self, key: str, current_content: Content, regenerated_content: Content
    ) -> RegenerationCheck:
        with self._lock:
            state = self._artifacts.get(key)
        if state is None:
            return RegenerationCheck(key=key, classification=ArtifactClassification.UNKNOWN)
        current = self.hash(current_content)
        classification = self._classify_against(state, current, regenerated_content)
        if classification is not ArtifactClassification.CHANGED_EXTERNALLY:
            return RegenerationCheck(key=key, classification=classification)
        notice = ExternalModificationNotice(
            key=key, generated_hash=state.generated_hash, current_hash=current
        )
        self._logger.warning(
            "artifact_changed_externally",
            key=key,
            generated_hash=notice.generated_hash,
            current_hash=notice.current_hash,
        )
        return RegenerationCheck(key=key, classification=classification, notice=notice)

    def observe(self, key: str, current_content: Content) -> ArtifactClassification:
        """Record the observed fingerprint of an existing artifact."""
        digest = self.hash(current_content)
        with self._lock:
            state = self._artifacts.get(key)
            if state is None:
                return ArtifactClassification.UNKNOWN
            self._artifacts[key] = ArtifactState(
                key=key,
                generated_hash=state.generated_hash,
                current_hash=digest,
                recorded_at=state.recorded_at,
            )
            if digest == state.generated_hash:
                return ArtifactClassification.UNCHANGED
            self._dirty = True
            self._last_change_at = self._now()
        self._logger.warning(
            "artifact_changed_externally",
            key=key,
            generated_hash=state.generated_hash,
            current_hash=digest,
        )
        return ArtifactClassification.CHANGED_EXTERNALLY

    def compare(self, current_hashes: Mapping[str, str]) -> tuple[str, ...]:
        """Keys that differ between the recorded state and ``current_hashes``."""
        with self._lock:
            recorded = dict(self._artifacts)
        changed: set[str] = set()
        for key, digest in current_hashes.items():
            state = recorded.get(key)
            if state is None or state.generated_hash != digest:
                changed.add(key)
        changed.update(key for key in recorded if key not in current_hashes)
        return tuple(sorted(changed))

    def modified_keys(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(key for key, state in self._artifacts.items() if state.dirty))

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._artifacts.pop(key, None) is not None

    def mark_dirty(self) -> None:
        timestamp = self._now()
        with self._lock:
            self._dirty = True
            self._last_change_at = timestamp

    def clear_dirty(self) -> None:
        with self._lock:
            self._dirty = False

    def set_source_schema_hash(self, digest: str) -> None:
        if not is_content_hash(digest):
            raise ValueError(f"not a content hash: {digest!r}")
        with self._lock:
            self._source_schema_hash = digest

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                artifacts=dict(self._artifacts),
                source_schema_hash=self._source_schema_hash,
                dirty=self._dirty,
                last_change_at=self._last_change_at,
                generated_at=self._generated_at,
                hash_mode=self._hash_mode,
            )

    def _classify_against(
        self, state: ArtifactState, current: str, expected_content: Content | None
    ) -> ArtifactClassification:
        if current == state.generated_hash:
            return ArtifactClassification.UNCHANGED
        if expected_content is not None and current == self.hash(expected_content):
            return ArtifactClassification.CHANGED_BY_SYSTEM
        return ArtifactClassification.CHANGED_EXTERNALLY

    def _now(self) -> str:
        return self._clock().isoformat()


__all__ = [
    "ArtifactClassification",
    "ArtifactState",
    "Clock",
    "ExternalModificationNotice",
    "RegenerationCheck",
    "StateSnapshot",
    "StateTracker",
]
