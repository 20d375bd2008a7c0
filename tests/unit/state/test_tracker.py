"""
ontosync — unit tests for the state tracker

File: tests/unit/state/test_tracker.py

Purpose
- Validate recording, classification, drift detection, and snapshot persistence.

What this test file should cover
- record/classify semantics including engine-originated changes.
- Regeneration checks surface an external-modification notice.
- Snapshot JSON round trip, hash mode persistence, and schema version checks.
- Concurrent recording keeps one entry per key.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest

from ontosync.state.hashing import HashMode, hash_content
from ontosync.state.tracker import (
    ArtifactClassification,
    ArtifactState,
    StateSnapshot,
    StateTracker,
)


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def debug(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def warning(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))


def _clock() -> datetime:
    return datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_record_then_classify_same_content_is_unchanged() -> None:
    tracker = StateTracker(clock=_clock)

    digest = tracker.record("Category:Person", "X")

    assert digest == hash_content("X")
    assert tracker.classify("Category:Person", "X") is ArtifactClassification.UNCHANGED
    assert tracker.classify("Category:Person", "Y") is ArtifactClassification.CHANGED_EXTERNALLY


def test_default_clock_stamps_utc() -> None:
    tracker = StateTracker()
    tracker.record("Category:Person", "X")

    recorded_at = tracker.snapshot().artifacts["Category:Person"].recorded_at

    assert recorded_at is not None
    assert datetime.fromisoformat(recorded_at).utcoffset() == UTC.utcoffset(None)


def test_classify_without_record_is_unknown() -> None:
    assert StateTracker().classify("Category:Ghost", "X") is ArtifactClassification.UNKNOWN


def test_expected_content_marks_engine_changes() -> None:
    tracker = StateTracker()
    tracker.record("Template:Person", "v1")

    classification = tracker.classify("Template:Person", "v2", expected_content="v2")

    assert classification is ArtifactClassification.CHANGED_BY_SYSTEM


def test_record_replaces_previous_entry() -> None:
    tracker = StateTracker(clock=_clock)
    tracker.record("Form:Person", "first")
    tracker.record("Form:Person", "second")

    snapshot = tracker.snapshot()

    assert list(snapshot.artifacts) == ["Form:Person"]
    assert snapshot.artifacts["Form:Person"].generated_hash == hash_content("second")
    assert snapshot.artifacts["Form:Person"].recorded_at == "2026-01-02T03:04:05+00:00"


def test_check_regeneration_returns_notice_for_external_edits() -> None:
    logger = _RecordingLogger()
    tracker = StateTracker(logger=logger)
    tracker.record("Category:Person", "generated")

    check = tracker.check_regeneration("Category:Person", "hand edited", "regenerated")

    assert check.classification is ArtifactClassification.CHANGED_EXTERNALLY
    assert not check.safe_to_overwrite
    assert check.notice is not None
    assert check.notice.generated_hash == hash_content("generated")
    assert check.notice.current_hash == hash_content("hand edited")
    assert "Category:Person" in check.notice.message
    assert [event for event, _ in logger.events] == [
        "artifact_recorded",
        "artifact_changed_externally",
    ]

    safe = tracker.check_regeneration("Category:Person", "generated", "regenerated")
    assert safe.safe_to_overwrite
    assert safe.classification is ArtifactClassification.UNCHANGED


def test_observe_flags_drift_and_dirty_state() -> None:
    tracker = StateTracker(clock=_clock)
    tracker.record("A", "one")
    tracker.record("B", "two")

    assert tracker.observe("A", "one") is ArtifactClassification.UNCHANGED
    assert not tracker.is_dirty
    assert tracker.observe("B", "edited") is ArtifactClassification.CHANGED_EXTERNALLY
    assert tracker.observe("C", "anything") is ArtifactClassification.UNKNOWN

    assert tracker.is_dirty
    assert tracker.modified_keys() == ("B",)
    assert tracker.snapshot().last_change_at == "2026-01-02T03:04:05+00:00"

    tracker.clear_dirty()
    assert not tracker.is_dirty


def test_compare_lists_changed_new_and_missing_keys() -> None:
    tracker = StateTracker()
    tracker.record("same", "s")
    tracker.record("changed", "c")
    tracker.record("missing", "m")

    changed = tracker.compare(
        {
            "same": hash_content("s"),
            "changed": hash_content("edited"),
            "new": hash_content("n"),
        }
    )

    assert changed == ("changed", "missing", "new")


def test_normalized_tracker_ignores_whitespace_only_edits() -> None:
    tracker = StateTracker(hash_mode=HashMode.NORMALIZED)
    tracker.record("Template:Person", "a\nb\n")

    assert tracker.classify("Template:Person", "a  \r\nb") is ArtifactClassification.UNCHANGED


def test_forget_and_source_schema_hash() -> None:
    tracker = StateTracker()
    tracker.record("A", "one")

    assert tracker.forget("A")
    assert not tracker.forget("A")
    assert tracker.get("A") is None

    tracker.set_source_schema_hash(hash_content("schema"))
    assert tracker.source_schema_hash == hash_content("schema")
    with pytest.raises(ValueError, match="not a content hash"):
        tracker.set_source_schema_hash("abc")


def test_snapshot_round_trips_through_json() -> None:
    tracker = StateTracker(clock=_clock)
    tracker.record("b", "two")
    tracker.record("a", "one")
    tracker.observe("b", "edited")
    tracker.set_source_schema_hash(hash_content("schema"))

    snapshot = tracker.snapshot()
    restored = StateSnapshot.from_json(snapshot.to_json())

    assert restored == snapshot
    assert list(restored.artifacts) == ["a", "b"]
    assert restored.dirty
    assert restored.artifacts["b"].dirty

    resumed = StateTracker(restored)
    assert resumed.modified_keys() == ("b",)
    assert resumed.classify("a", "one") is ArtifactClassification.UNCHANGED


def test_snapshot_keeps_hash_mode_across_restarts() -> None:
    content = "line one  \r\nline two\r\n"
    tracker = StateTracker(hash_mode=HashMode.NORMALIZED)
    tracker.record("Template:Person", content)

    payload = tracker.snapshot().to_json()
    resumed = StateTracker(StateSnapshot.from_json(payload))

    assert '"hash_mode":"normalized"' in payload
    assert resumed.hash_mode is HashMode.NORMALIZED
    assert resumed.classify("Template:Person", content) is ArtifactClassification.UNCHANGED
    assert resumed.classify("Template:Person", "line one\nline two") is (
        ArtifactClassification.UNCHANGED
    )


def test_conflicting_hash_mode_for_snapshot_is_rejected() -> None:
    snapshot = StateTracker(hash_mode=HashMode.NORMALIZED).snapshot()

    with pytest.raises(ValueError, match="conflicts"):
        StateTracker(snapshot, hash_mode=HashMode.RAW)
    assert StateTracker(snapshot, hash_mode="normalized").hash_mode is HashMode.NORMALIZED


def test_snapshot_without_hash_mode_loads_as_raw() -> None:
    legacy = {"artifacts": {"a": {"generated_hash": hash_content("one")}}}

    snapshot = StateSnapshot.from_dict(legacy)

    assert snapshot.hash_mode is HashMode.RAW
    assert StateTracker(snapshot).classify("a", "one") is ArtifactClassification.UNCHANGED
    with pytest.raises(ValueError, match="hash_mode"):
        StateSnapshot.from_dict({"hash_mode": "fuzzy"})


def test_normalized_tracker_records_non_utf8_artifacts() -> None:
    tracker = StateTracker(hash_mode=HashMode.NORMALIZED)

    tracker.record("File:blob", b"\xff\xfe raw")

    assert tracker.classify("File:blob", b"\xff\xfe raw  \r\n") is ArtifactClassification.UNCHANGED
    assert tracker.classify("File:blob", b"\xff\xfd raw") is (
        ArtifactClassification.CHANGED_EXTERNALLY
    )


def test_check_regeneration_for_forgotten_key_is_unknown() -> None:
    tracker = StateTracker()
    tracker.record("Category:Person", "generated")
    tracker.forget("Category:Person")

    check = tracker.check_regeneration("Category:Person", "hand edited", "regenerated")

    assert check.classification is ArtifactClassification.UNKNOWN
    assert check.safe_to_overwrite


def test_check_regeneration_tolerates_concurrent_forget() -> None:
    tracker = StateTracker(logger=_RecordingLogger())
    errors: list[AssertionError] = []
    stop = threading.Event()

    def churn() -> None:
        while not stop.is_set():
            tracker.record("Category:Person", "generated")
            tracker.forget("Category:Person")

    def check() -> None:
        try:
            for _ in range(500):
                result = tracker.check_regeneration("Category:Person", "edited", "regenerated")
                assert result.classification in {
                    ArtifactClassification.UNKNOWN,
                    ArtifactClassification.CHANGED_EXTERNALLY,
                }
        except AssertionError as exc:
            errors.append(exc)

    churner = threading.Thread(target=churn)
    checker = threading.Thread(target=check)
    churner.start()
    checker.start()
    checker.join()
    stop.set()
    churner.join()

    assert errors == []


def test_snapshot_rejects_bad_payloads() -> None:
    with pytest.raises(ValueError, match="schema_version"):
        StateSnapshot.from_dict({"schema_version": 2})
    with pytest.raises(ValueError, match="not valid JSON"):
        StateSnapshot.from_json("{")
    with pytest.raises(ValueError, match="generated_hash"):
        StateSnapshot.from_dict({"artifacts": {"a": {"generated_hash": "nope"}}})
    with pytest.raises(ValueError, match="non-empty"):
        ArtifactState(key=" ", generated_hash=hash_content("x"))


def test_concurrent_records_keep_one_entry_per_key() -> None:
    tracker = StateTracker()
    barrier = threading.Barrier(8)

    def worker(index: int) -> None:
        barrier.wait()
        for round_index in range(50):
            tracker.record(f"key-{round_index % 5}", f"worker-{index}-{round_index}")

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = tracker.snapshot()
    assert sorted(snapshot.artifacts) == [f"key-{index}" for index in range(5)]
