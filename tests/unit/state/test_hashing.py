"""Unit tests for artifact and schema fingerprints."""

from __future__ import annotations

import hashlib

import pytest

from ontosync.state.hashing import (
    HashMode,
    extract_marked_section,
    hash_content,
    hash_schema,
    is_content_hash,
    normalize_content,
)


def test_raw_hash_is_sha256_of_utf8_bytes() -> None:
    digest = hash_content("Größe")

    assert digest == "sha256:" + hashlib.sha256("Größe".encode()).hexdigest()
    assert hash_content("Größe".encode()) == digest
    assert is_content_hash(digest)


def test_raw_mode_is_sensitive_to_whitespace() -> None:
    assert hash_content("line\n") != hash_content("line\r\n")
    assert hash_content("line") != hash_content("line ")


def test_normalized_mode_ignores_line_endings_and_trailing_space() -> None:
    first = hash_content("\n\nalpha  \r\nbeta\r\n\n", mode=HashMode.NORMALIZED)
    second = hash_content("alpha\nbeta", mode="normalized")

    assert first == second
    assert normalize_content("a \r b\t\n") == b"a\n b"


def test_normalized_mode_accepts_non_utf8_bytes() -> None:
    blob = b"\xff\xfe raw \r\n\x80tail  "

    assert normalize_content(blob) == b"\xff\xfe raw\n\x80tail"
    assert hash_content(blob, mode=HashMode.NORMALIZED) == hash_content(
        b"\xff\xfe raw\n\x80tail\n", mode=HashMode.NORMALIZED
    )


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        hash_content("x", mode="fuzzy")


def test_schema_hash_ignores_key_order() -> None:
    first = hash_schema({"b": [1, 2], "a": {"y": 1, "x": 2}})
    second = hash_schema({"a": {"x": 2, "y": 1}, "b": [1, 2]})

    assert first == second
    assert hash_schema({"b": [2, 1]}) != hash_schema({"b": [1, 2]})


def test_extract_marked_section() -> None:
    content = "intro\n<!-- ontosync:start -->\nowned\n<!-- ontosync:end -->\nfooter"

    assert extract_marked_section(content) == "\nowned\n"
    assert extract_marked_section("no markers") is None
    assert extract_marked_section("<!-- ontosync:end --> <!-- ontosync:start -->") is None
    assert extract_marked_section("[[a]]x[[b]]", "[[a]]", "[[b]]") == "x"


def test_is_content_hash_rejects_malformed_values() -> None:
    assert not is_content_hash("sha256:abc")
    assert not is_content_hash("md5:" + "0" * 64)
    assert not is_content_hash("sha256:" + "G" * 64)
    assert not is_content_hash(None)
