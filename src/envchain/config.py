# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Config loading utilities with layered precedence and traceability."""

from __future__ import annotations

import copy
import os
import re
import tomllib
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError
from .params import ParameterSet

DEFAULT_INCLUDE_KEY: Final[str] = "include"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "envchain"
PROJECT_CONFIG_NAME: Final[str] = ".envchain.toml"
USER_CONFIG_NAME: Final[str] = ".envchain.toml"

_ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")
_CONFIG_FIELDS: Final[frozenset[str]] = frozenset(
    name for name in ParameterSet.model_fields if name != "extra_hook"
)


class ConfigSource(ABC):
    """Source of a raw configuration fragment."""

    name: str

    @abstractmethod
    def load(self) -> Mapping[str, Any]:
        """Return the raw configuration fragment (empty when absent)."""

    @abstractmethod
    def describe(self) -> str:
        """Return a human-readable description of the source."""


class DefaultConfigSource(ConfigSource):
    """Return the built-in defaults as a configuration fragment."""

    name = "defaults"

    def load(self) -> Mapping[str, Any]:
        return ParameterSet().model_dump(exclude={"extra_hook"})

    def describe(self) -> str:
        return "Built-in defaults"


class MappingConfigSource(ConfigSource):
    """Wrap an in-memory mapping, such as options given on the command line."""

    def __init__(self, data: Mapping[str, Any], *, name: str) -> None:
        self._data = {key: value for key, value in data.items() if value is not None}
        self.name = name

    def load(self) -> Mapping[str, Any]:
        return dict(self._data)

    def describe(self) -> str:
        return f"In-memory configuration ({self.name})"


class TomlConfigSource(ConfigSource):
    """Load configuration data from a TOML document with include support."""

    def __init__(
        self,
        path: Path,
        *,
        name: str | None = None,
        include_key: str = DEFAULT_INCLUDE_KEY,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._root_path = path
        self.name = name or str(path)
        self._include_key = include_key
        self._env = env if env is not None else os.environ

    def load(self) -> Mapping[str, Any]:
        return self._load(self._root_path, ())

    def _load(self, path: Path, stack: tuple[Path, ...]) -> Mapping[str, Any]:
        if not path.exists():
            return {}
        resolved = path.resolve()
        if resolved in stack:
            include_chain = " -> ".join(str(entry) for entry in (*stack, resolved))
            raise ConfigError(f"Circular include detected: {include_chain}")
        try:
            with resolved.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{path}: invalid TOML ({exc})") from exc
        document: dict[str, Any] = self._select(data)
        includes = document.pop(self._include_key, None)
        merged: dict[str, Any] = {}
        for include_path in self._coerce_includes(includes, resolved.parent):
            fragment = self._load(include_path, stack + (resolved,))
            merged = _deep_merge(merged, fragment)
        merged = _deep_merge(merged, document)
        return _expand_env(merged, self._env)

    def _select(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Return the part of ``data`` holding envchain settings."""

        return copy.deepcopy(dict(data))

    def _coerce_includes(self, raw: Any, base_dir: Path) -> Iterable[Path]:
        if raw is None:
            return []
        if isinstance(raw, str):
            return [self._resolve_path(Path(raw), base_dir)]
        if isinstance(raw, list):
            return [self._resolve_path(Path(item), base_dir) for item in raw]
        raise ConfigError(f"Unsupported include declaration: {raw!r}")

    @staticmethod
    def _resolve_path(path: Path, base_dir: Path) -> Path:
        return path if path.is_absolute() else (base_dir / path)

    def describe(self) -> str:
        return f"TOML configuration at {self.name}"


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.envchain]`` within ``pyproject.toml``."""

    def __init__(self, path: Path, *, env: Mapping[str, str] | None = None) -> None:
        super().__init__(path, name=str(path), env=env)

    def _select(self, data: Mapping[str, Any]) -> dict[str, Any]:
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, Mapping):
            return {}
        section = tool_section.get(PYPROJECT_SECTION_KEY)
        if not isinstance(section, Mapping):
            return {}
        return copy.deepcopy(dict(section))

    def describe(self) -> str:
        return f"pyproject.toml ({self.name})"


class FieldUpdate(BaseModel):
    """Description of a single configuration field mutation."""

    model_config = ConfigDict(validate_assignment=True)

    field: str
    source: str
    value: Any


class ConfigLoadResult(BaseModel):
    """Container bundling resolved parameters with provenance metadata."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    parameters: ParameterSet
    updates: list[FieldUpdate] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ConfigLoader:
    """Apply layered configuration sources with predictable precedence."""

    def __init__(self, *, sources: Sequence[ConfigSource]) -> None:
        if not sources:
            raise ValueError("at least one configuration source is required")
        self._sources = list(sources)

    @classmethod
    def for_root(
        cls,
        project_root: Path,
        *,
        user_config: Path | None = None,
        project_config: Path | None = None,
        cli_values: Mapping[str, Any] | None = None,
    ) -> ConfigLoader:
        """Build a loader honouring defaults, user, pyproject, project and CLI layers.

        Args:
            project_root: Workspace root used to discover configuration files.
            user_config: Optional path to a user-level override.
            project_config: Optional project-level override path.
            cli_values: Values given explicitly on the command line.

        Returns:
            ConfigLoader: Loader configured with default precedence ordering.
        """

        root = project_root.resolve()
        home_config = user_config if user_config is not None else Path.home() / USER_CONFIG_NAME
        project_file = project_config if project_config is not None else root / PROJECT_CONFIG_NAME
        pyproject = root / "pyproject.toml"
        sources: list[ConfigSource] = [
            DefaultConfigSource(),
            TomlConfigSource(home_config, name=str(home_config)),
        ]
        if pyproject.exists():
            sources.append(PyProjectConfigSource(pyproject))
        sources.append(TomlConfigSource(project_file, name=str(project_file)))
        if cli_values:
            sources.append(MappingConfigSource(cli_values, name="cli"))
        return cls(sources=sources)

    @property
    def sources(self) -> tuple[ConfigSource, ...]:
        """Return the configured sources in precedence order."""

        return tuple(self._sources)

    def load(self, *, strict: bool = False) -> ParameterSet:
        """Return the resolved parameters without provenance metadata."""

        return self.load_with_trace(strict=strict).parameters

    def load_with_trace(self, *, strict: bool = False) -> ConfigLoadResult:
        """Return the resolved parameters with trace metadata.

        Args:
            strict: When ``True`` raise if warnings were emitted during merge.

        Returns:
            ConfigLoadResult: Parameters and provenance details.

        Raises:
            ConfigError: If a source is malformed, the merged values are
                invalid, or ``strict`` is set and warnings were collected.
        """

        merged: dict[str, Any] = {}
        updates: list[FieldUpdate] = []
        warnings: list[str] = []
        for source in self._sources:
            fragment = _normalise_keys(source.load())
            for key in sorted(set(fragment) - _CONFIG_FIELDS):
                warnings.append(f"{source.name}: unknown setting '{key}' ignored")
            for key, value in fragment.items():
                if key not in _CONFIG_FIELDS:
                    continue
                if merged.get(key, _MISSING) != value and source.name != DefaultConfigSource.name:
                    updates.append(FieldUpdate(field=key, source=source.name, value=value))
                merged[key] = value
        if strict and warnings:
            raise ConfigError("; ".join(warnings))
        parameters = ParameterSet.from_mapping(merged, context="configuration")
        return ConfigLoadResult(parameters=parameters, updates=updates, warnings=warnings)


_MISSING: Final[object] = object()


def load_parameters(project_root: Path, **cli_values: Any) -> ParameterSet:
    """Load parameters for ``project_root`` using the default tiered sources."""

    return ConfigLoader.for_root(project_root, cli_values=cli_values).load()


def _normalise_keys(fragment: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key).replace("-", "_"): value for key, value in fragment.items()}


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _expand_env(data: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    return {key: _expand_env_value(value, env) for key, value in data.items()}


def _expand_env_value(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda match: _lookup(match, env), value)
    if isinstance(value, MutableMapping):
        return {k: _expand_env_value(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_value(v, env) for v in value]
    return value


def _lookup(match: re.Match[str], env: Mapping[str, str]) -> str:
    key = match.group(1) or match.group(2)
    return env.get(key, match.group(0))


__all__ = [
    "ConfigLoadResult",
    "ConfigLoader",
    "ConfigSource",
    "DefaultConfigSource",
    "FieldUpdate",
    "MappingConfigSource",
    "PyProjectConfigSource",
    "TomlConfigSource",
    "load_parameters",
]
