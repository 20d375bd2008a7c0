"""
ontosync — artifact hashing utilities.

File: src/ontosync/state/hashing.py

Purpose
- Provide deterministic SHA-256 fingerprints for generated artifacts and for
  the source definitions they were generated from.

Functional requirements
- Hashes render as ``sha256:<64 lowercase hex>``.
- Raw mode hashes the exact bytes given; text is UTF-8 encoded first.
- Normalized mode ignores line-ending style, trailing whitespace, and
  surrounding blank lines.
- Schema hashes are independent of mapping key order.

Non-functional requirements
- Standard library only; behavior is cross-platform deterministic.
"""

from __future__ import annotations

import hashlib
import json
import string
from collections.abc import Mapping
from enum import StrEnum
from typing import Final

from ontosync.constants import HASH_PREFIX

Content = str | bytes

_SHA256_HEX_LENGTH: Final[int] = 64
_HEX_DIGITS: Final[frozenset[str]] = frozenset(string.hexdigits.lower())

DEFAULT_SECTION_START: Final[str] = "<!-- ontosync:start -->"
DEFAULT_SECTION_END: Final[str] = "<!-- ontosync:end -->"


class HashMode(StrEnum):
    """What an artifact hash is computed over."""

    RAW = "raw"
    NORMALIZED = "normalized"


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))


def normalize_content(content: Content) -> bytes:
    """
    Canonical byte form used by :attr:`HashMode.NORMALIZED`.

    Works on bytes so artifacts in any encoding normalize without decoding.
    """

    if isinstance(content, str):
        data = content.encode("utf-8")
    elif isinstance(content, bytes):
        data = content
    else:
        raise TypeError(f"content must be str or bytes, got {type(content).__name__}")
    data = data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")
    lines = [line.rstrip() for line in data.split(b"\n")]
    return b"\n".join(lines).strip(b"\n")


def hash_content(content: Content, *, mode: HashMode | str = HashMode.RAW) -> str:
    """Return the prefixed fingerprint of an artifact body."""

    resolved = HashMode(mode)
    if resolved is HashMode.NORMALIZED:
        data = normalize_content(content)
    elif isinstance(content, bytes):
        data = content
    elif isinstance(content, str):
        data = content.encode("utf-8")
    else:
        raise TypeError(f"content must be str or bytes, got {type(content).__name__}")
    return HASH_PREFIX + sha256_bytes(data)


def hash_schema(schema: Mapping[str, object]) -> str:
    """Fingerprint a definition mapping independently of key order."""

    rendered = json.dumps(schema, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return HASH_PREFIX + sha256_text(rendered)


def extract_marked_section(
    content: str,
    start_marker: str = DEFAULT_SECTION_START,
    end_marker: str = DEFAULT_SECTION_END,
) -> str | None:
    """
    Return the text strictly between two markers.

    ``None`` when either marker is missing or the end marker precedes the
    start marker.
    """

    start = content.find(start_marker)
    if start < 0:
        return None
    body_start = start + len(start_marker)
    end = content.find(end_marker, body_start)
    if end < 0:
        return None
    return content[body_start:end]


def is_content_hash(value: object) -> bool:
    """True when ``value`` looks like a prefixed SHA-256 fingerprint."""

    if not isinstance(value, str) or not value.startswith(HASH_PREFIX):
        return False
    digest = value[len(HASH_PREFIX) :]
    return len(digest) == _SHA256_HEX_LENGTH and all(char in _HEX_DIGITS for char in digest)


__all__ = [
    "Content",
    "DEFAULT_SECTION_END",
    "DEFAULT_SECTION_START",
    "HashMode",
    "extract_marked_section",
    "hash_content",
    "hash_schema",
    "is_content_hash",
    "normalize_content",
    "sha256_bytes",
    "sha256_text",
]
