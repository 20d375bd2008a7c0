"""Typed engine settings derived from a validated config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ontosync.config.schema import assert_valid_config, default_config, merge_config
from ontosync.state.hashing import HashMode


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Knobs the validator and the state tracker accept explicitly."""

    property_prefix: str = ""
    check_separators: bool = True
    extra_datatypes: tuple[str, ...] = ()
    warn_unused_properties: bool = True
    warn_empty_categories: bool = True
    hash_mode: HashMode = HashMode.RAW

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> EngineSettings:
        """Build settings from a full or partial config mapping (validated first)."""
        validated: dict[str, Any] = assert_valid_config(merge_config(default_config(), config))
        naming = validated["naming"]
        return cls(
            property_prefix=naming["property_prefix"],
            check_separators=naming["check_separators"],
            extra_datatypes=tuple(validated["datatypes"]["extra"]),
            warn_unused_properties=validated["validation"]["warn_unused_properties"],
            warn_empty_categories=validated["validation"]["warn_empty_categories"],
            hash_mode=HashMode(validated["state"]["hash_mode"]),
        )

    def accepts_datatype(self, tag: str) -> bool:
        folded = tag.casefold()
        return any(extra.casefold() == folded for extra in self.extra_datatypes)


__all__ = ["EngineSettings"]
