"""
ontosync — unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and explicit overrides.

What this test file should cover
- Precedence: overrides > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
- Deterministic effective config dumping.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from ontosync.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    env_name_for_path,
    load_config,
)
from ontosync.config.schema import ConfigValidationError
from ontosync.config.settings import EngineSettings
from ontosync.state.hashing import HashMode


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _sha256_json(data: dict[str, object]) -> str:
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def test_loader_precedence_default_file_env_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    default_path = tmp_path / "default.toml"
    _write_config(default_path, "")
    _write_config(
        config_path,
        """
[state]
hash_mode = "normalized"

[validation]
warn_unused_properties = false
""".strip(),
    )

    default_loaded = load_config(default_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"ONTOSYNC_STATE_HASH_MODE": "raw"})
    override_loaded = load_config(
        config_path,
        environ={"ONTOSYNC_STATE_HASH_MODE": "raw"},
        overrides={"state.hash_mode": "normalized"},
    )

    assert default_loaded["state"]["hash_mode"] == "raw"
    assert default_loaded["validation"]["warn_unused_properties"] is True
    assert file_loaded["state"]["hash_mode"] == "normalized"
    assert file_loaded["validation"]["warn_unused_properties"] is False
    assert env_loaded["state"]["hash_mode"] == "raw"
    assert override_loaded["state"]["hash_mode"] == "normalized"


def test_env_mapping_coerces_bools_and_lists(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={
            "ONTOSYNC_NAMING_CHECK_SEPARATORS": "off",
            "ONTOSYNC_DATATYPES_EXTRA": "Geographic coordinate, Reference ,",
            "ONTOSYNC_NAMING_PROPERTY_PREFIX": "Has",
        },
    )

    assert loaded["naming"]["check_separators"] is False
    assert loaded["datatypes"]["extra"] == ["Geographic coordinate", "Reference"]
    assert loaded["naming"]["property_prefix"] == "Has "


def test_env_name_for_path_is_prefixed_and_upper_case() -> None:
    assert env_name_for_path(("state", "hash_mode")) == "ONTOSYNC_STATE_HASH_MODE"


def test_invalid_env_coercion_raises_actionable_error(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="ONTOSYNC_OBSERVABILITY_LOG_TO_STDOUT"):
        load_config(config_path, environ={"ONTOSYNC_OBSERVABILITY_LOG_TO_STDOUT": "maybe"})


def test_invalid_enum_value_from_env_fails_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError, match="state.hash_mode"):
        load_config(config_path, environ={"ONTOSYNC_STATE_HASH_MODE": "fuzzy"})


def test_invalid_toml_raises_config_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "[state\nhash_mode = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_missing_explicit_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "missing.toml", environ={})


def test_loader_is_deterministic_for_same_inputs(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    env = {"ONTOSYNC_VALIDATION_WARN_EMPTY_CATEGORIES": "false"}
    overrides = {"observability.log_level": "DEBUG"}

    first = load_config(config_path, environ=env, overrides=overrides)
    second = load_config(config_path, environ=env, overrides=overrides)

    assert _sha256_json(first) == _sha256_json(second)


def test_path_normalization_is_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "ontosync.toml"
    _write_config(
        config_path,
        """
[observability]
log_dir = "run-logs"
""".strip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded["observability"]["log_dir"] == (config_path.parent / "run-logs").as_posix()


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    loaded = load_config(config_path, environ={})
    first = dump_effective_config(loaded)
    second = dump_effective_config(loaded)

    assert first == second
    assert json.loads(first)["meta"]["schema_version"] == 1


def test_engine_settings_follow_loaded_config(tmp_path: Path) -> None:
    config_path = tmp_path / "ontosync.toml"
    _write_config(
        config_path,
        """
[naming]
property_prefix = "Has "

[datatypes]
extra = ["Geographic coordinate"]

[state]
hash_mode = "normalized"
""".strip(),
    )

    settings = EngineSettings.from_config(load_config(config_path, environ={}))

    assert settings.property_prefix == "Has "
    assert settings.hash_mode is HashMode.NORMALIZED
    assert settings.accepts_datatype("geographic coordinate")
    assert not settings.accepts_datatype("Reference")


def test_config_package_exports_loader_and_errors(tmp_path: Path) -> None:
    import ontosync.config as config_pkg

    config_path = tmp_path / "ontosync.toml"
    _write_config(config_path, "")

    loaded = config_pkg.load_config(config_path, environ={})
    assert loaded["meta"]["schema_version"] == 1

    with pytest.raises(config_pkg.ConfigLoadError):
        config_pkg.load_config(tmp_path / "missing.toml")
