"""Layering of configuration sources."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping, Sequence

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import PipelibConfig

ENV_PREFIX = "PIPELIB__"


def resolve_with_precedence(
    *,
    defaults: PipelibConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> PipelibConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values produced by :func:`parse_env_overrides`.
        cli_overrides: Dotted-key overrides such as ``{"database.path": ...}``.

    Returns:
        PipelibConfig: Validated configuration.

    Raises:
        ConfigError: If any source is malformed or the merged result is invalid.
    """
    merged = defaults.model_dump(mode="python")
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source:
            merged = _deep_merge(merged, _expand_dotted(source, source_name=name))

    try:
        return PipelibConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``PIPELIB__SECTION__KEY`` variables into nested overrides.

    Values are read as YAML scalars so ``false`` and ``5`` arrive typed;
    anything YAML rejects is kept as the raw string.
    """
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in key[len(ENV_PREFIX) :].split("__") if part]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_nested(overrides, path, value, source_name="environment")
    return overrides


def read_dotted(config: PipelibConfig, path: Sequence[str]) -> Any:
    """Return the value at ``path`` inside ``config``.

    Raises:
        ConfigError: If no setting lives at ``path``.
    """
    node: Any = config.model_dump(mode="python")
    for segment in path:
        if not isinstance(node, dict) or segment not in node:
            raise ConfigError(f"Unknown setting: {'.'.join(path)}")
        node = node[segment]
    return node


def assign_nested(
    target: dict[str, Any],
    path: Sequence[str],
    value: Any,
    *,
    source_name: str = "config",
) -> None:
    """Assign ``value`` at the nested ``path`` inside ``target``.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"{source_name.capitalize()} value for {'.'.join(path)} "
                f"conflicts with the scalar at {segment}."
            )
        node = child
    if isinstance(value, MappingABC):
        existing = node.get(path[-1])
        base = existing if isinstance(existing, dict) else {}
        node[path[-1]] = _deep_merge(base, _expand_dotted(value, source_name=source_name))
    else:
        node[path[-1]] = value


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")
    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        assign_nested(expanded, key.split("."), value, source_name=source_name)
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "assign_nested",
    "parse_env_overrides",
    "read_dotted",
    "resolve_with_precedence",
]
