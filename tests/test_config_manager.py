"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from pipelib.config import (
    ConfigError,
    ConfigManager,
    PipelibConfig,
    parse_env_overrides,
    read_dotted,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".pipelib" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "pipelib configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, PipelibConfig)
    assert config.library.suffix == ".pipe"


def test_load_applies_file_env_then_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()
    manager.save({"library": {"root": "/srv/pipes"}, "search": {"min_term_length": 3}})

    env = {
        "PIPELIB__SEARCH__MIN_TERM_LENGTH": "4",
        "PIPELIB__SCANNING__PRUNE_MISSING": "false",
        "UNRELATED": "ignored",
    }
    cli = {"search.min_term_length": 5}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.library.root == "/srv/pipes"
    assert config.scanning.prune_missing is False
    # CLI overrides take precedence over environment
    assert config.search.min_term_length == 5


def test_suffix_gains_leading_dot() -> None:
    config = resolve_with_precedence(
        defaults=PipelibConfig(), file_overrides={"library": {"suffix": "pipe"}}
    )

    assert config.library.suffix == ".pipe"


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_section_is_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=PipelibConfig(), file_overrides={"llm": {"model": "x"}})


def test_parse_env_overrides_nests_and_types_values() -> None:
    overrides = parse_env_overrides(
        {
            "PIPELIB__SEARCH__MIN_TERM_LENGTH": "4",
            "PIPELIB__LIBRARY__ROOT": "/srv/pipes",
            "PIPELIB__SCANNING__PRUNE_MISSING": "false",
            "PIPELIB__": "ignored",
            "HOME": "/root",
        }
    )

    assert overrides == {
        "search": {"min_term_length": 4},
        "library": {"root": "/srv/pipes"},
        "scanning": {"prune_missing": False},
    }


def test_read_dotted_returns_nested_value() -> None:
    config = PipelibConfig()

    assert read_dotted(config, ["search", "min_term_length"]) == 2
    assert read_dotted(config, ["library"])["suffix"] == ".pipe"
    with pytest.raises(ConfigError):
        read_dotted(config, ["search", "fuzzy"])


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PipelibConfig(),
            file_overrides={"search": {"min_term_length": 0}},
        )
