# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Override chain steps transforming one environment descriptor into the next.

Steps apply strictly in order. When two steps contribute tools with the same
identity the later one wins silently, mirroring attribute-set merges.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Literal, TypeAlias

from .descriptor import EnvironmentDescriptor, ExtraHook
from .errors import ConfigError
from .models import AttrsUpdate, ToolReference
from .packages import PackageSet
from .types import JSONValue
from .utils import expect_mapping, expect_string, string_array, string_mapping

LOGGER = logging.getLogger(__name__)

OverrideKind: TypeAlias = Literal["extend", "replace", "inject", "remove", "override-attrs", "set-env"]
ToolLike: TypeAlias = ToolReference | str


def _materialise(tool: ToolLike, packages: PackageSet) -> ToolReference:
    if isinstance(tool, ToolReference):
        return tool
    if isinstance(tool, str):
        return packages.reference(tool)
    raise ConfigError(f"expected a tool reference or package identity, got {type(tool).__name__}")


@dataclass(frozen=True, slots=True)
class ExtendOverride:
    """Append tools (references or package identities) to the descriptor."""

    tools: tuple[ToolLike, ...]
    kind: OverrideKind = field(default="extend", init=False)

    def __post_init__(self) -> None:
        tools = (self.tools,) if isinstance(self.tools, (str, ToolReference)) else tuple(self.tools)
        object.__setattr__(self, "tools", tools)

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        additions = [_materialise(tool, descriptor.packages) for tool in self.tools]
        return descriptor.extended(additions)


@dataclass(frozen=True, slots=True)
class ReplaceOverride:
    """Swap the tool registered under ``target`` for ``replacement`` in place."""

    target: str
    replacement: ToolLike
    kind: OverrideKind = field(default="replace", init=False)

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        if descriptor.tool(self.target) is None:
            raise ConfigError(f"{descriptor.name}: cannot replace unknown tool '{self.target}'")
        replacement = _materialise(self.replacement, descriptor.packages)
        tools: list[ToolReference] = []
        for tool in descriptor.tools:
            if tool.identity == self.target:
                tools.append(replacement)
            elif tool.identity != replacement.identity:
                tools.append(tool)
        return descriptor.with_tools(tools)


@dataclass(frozen=True, slots=True)
class InjectOverride:
    """Append the results of an extra-package hook called with the package universe.

    Uses ``hook`` when given, otherwise the descriptor's ``extra_hook``. With
    neither present the step leaves the descriptor unchanged.
    """

    hook: ExtraHook | None = None
    kind: OverrideKind = field(default="inject", init=False)

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        hook = self.hook or descriptor.extra_hook
        if hook is None:
            return descriptor
        try:
            produced = list(hook(descriptor.packages))
        except KeyError as exc:
            raise ConfigError(f"{descriptor.name}: extra-package hook requested unknown package {exc}") from exc
        LOGGER.debug("extra-package hook contributed %d tool(s) to %s", len(produced), descriptor.name)
        return descriptor.extended(_materialise(tool, descriptor.packages) for tool in produced)


@dataclass(frozen=True, slots=True)
class RemoveOverride:
    """Drop tools by identity; identities that are absent are ignored."""

    identities: tuple[str, ...]
    kind: OverrideKind = field(default="remove", init=False)

    def __post_init__(self) -> None:
        identities = (self.identities,) if isinstance(self.identities, str) else tuple(self.identities)
        object.__setattr__(self, "identities", identities)

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        dropped = set(self.identities)
        return descriptor.with_tools(tool for tool in descriptor.tools if tool.identity not in dropped)


@dataclass(frozen=True, slots=True)
class AttrsOverride:
    """Update fields of the tool registered under ``target``.

    A mapping extends the extension list and replaces other fields; a
    callable receives the current reference and returns replacement fields.
    """

    target: str
    attrs: AttrsUpdate
    kind: OverrideKind = field(default="override-attrs", init=False)

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        current = descriptor.tool(self.target)
        if current is None:
            raise ConfigError(f"{descriptor.name}: cannot override attributes of unknown tool '{self.target}'")
        updated = current.override_attrs(self.attrs)
        return descriptor.with_tools(updated if tool.identity == self.target else tool for tool in descriptor.tools)


@dataclass(frozen=True, slots=True)
class EnvOverride:
    """Merge environment variables into the descriptor.

    Values may reference tools of the descriptor as ``{identity}``, which
    expands to the tool's ``identity@version`` label.
    """

    variables: Mapping[str, str]
    kind: OverrideKind = field(default="set-env", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def apply(self, descriptor: EnvironmentDescriptor) -> EnvironmentDescriptor:
        labels = {tool.identity: tool.label for tool in descriptor.tools}
        expanded: dict[str, str] = {}
        for key, template in self.variables.items():
            try:
                expanded[key] = template.format_map(labels)
            except (KeyError, IndexError, ValueError, AttributeError, TypeError) as exc:
                raise ConfigError(f"{descriptor.name}: cannot expand {key}={template!r} ({exc})") from exc
        return descriptor.with_env(expanded)


OverrideSpec: TypeAlias = (
    ExtendOverride | ReplaceOverride | InjectOverride | RemoveOverride | AttrsOverride | EnvOverride
)
OVERRIDE_TYPES: Final[tuple[type, ...]] = (
    ExtendOverride,
    ReplaceOverride,
    InjectOverride,
    RemoveOverride,
    AttrsOverride,
    EnvOverride,
)


def apply_override(descriptor: EnvironmentDescriptor, override: OverrideSpec) -> EnvironmentDescriptor:
    """Return the descriptor produced by applying ``override`` to ``descriptor``.

    Raises:
        ConfigError: If the step is not a known override or cannot be applied.
    """

    if not isinstance(override, OVERRIDE_TYPES):
        raise ConfigError(f"unsupported override step {override!r}")
    LOGGER.debug("applying %s override to %s", override.kind, descriptor.name)
    return override.apply(descriptor)


def apply_chain(descriptor: EnvironmentDescriptor, overrides: Iterable[OverrideSpec]) -> EnvironmentDescriptor:
    """Fold ``overrides`` over ``descriptor`` in order; an empty chain is the identity."""

    for override in overrides:
        descriptor = apply_override(descriptor, override)
    return descriptor


def override_from_mapping(data: Mapping[str, JSONValue], *, context: str) -> OverrideSpec:
    """Build an override step from a configuration table.

    Recognised tables::

        {kind = "extend", tools = ["lint", "coverage"]}
        {kind = "replace", target = "compiler", replacement = "compiler-nightly"}
        {kind = "replace", target = "compiler", replacement = {identity = "compiler", package = "rustc"}}
        {kind = "inject"}
        {kind = "remove", tools = ["lint"]}
        {kind = "override-attrs", target = "compiler", attrs = {extensions = ["clippy"]}}
        {kind = "set-env", variables = {RUST_BACKTRACE = "1"}}

    Raises:
        ConfigError: If the table is malformed or names an unknown kind.
    """

    kind = expect_string(data.get("kind"), key="kind", context=context)
    if kind == "extend":
        return ExtendOverride(tools=string_array(data.get("tools"), key="tools", context=context))
    if kind == "replace":
        target = expect_string(data.get("target"), key="target", context=context)
        raw = data.get("replacement")
        replacement: ToolLike
        if isinstance(raw, Mapping):
            replacement = ToolReference.from_mapping(raw, context=f"{context}.replacement")
        else:
            replacement = expect_string(raw, key="replacement", context=context)
        return ReplaceOverride(target=target, replacement=replacement)
    if kind == "inject":
        return InjectOverride()
    if kind == "remove":
        return RemoveOverride(identities=string_array(data.get("tools"), key="tools", context=context))
    if kind == "override-attrs":
        target = expect_string(data.get("target"), key="target", context=context)
        attrs = expect_mapping(data.get("attrs"), key="attrs", context=context)
        return AttrsOverride(target=target, attrs=dict(attrs))
    if kind == "set-env":
        return EnvOverride(variables=string_mapping(data.get("variables"), key="variables", context=context))
    raise ConfigError(f"{context}: unknown override kind '{kind}'")


def coerce_overrides(values: Sequence[object], *, context: str = "overrides") -> tuple[OverrideSpec, ...]:
    """Return ``values`` as override steps, parsing configuration tables.

    Raises:
        ConfigError: If an entry is neither an override step nor a valid table.
    """

    steps: list[OverrideSpec] = []
    for index, value in enumerate(values):
        if isinstance(value, OVERRIDE_TYPES):
            steps.append(value)  # type: ignore[arg-type]
        elif isinstance(value, Mapping):
            steps.append(override_from_mapping(value, context=f"{context}[{index}]"))
        else:
            raise ConfigError(f"{context}[{index}]: unsupported override {value!r}")
    return tuple(steps)


__all__ = [
    "AttrsOverride",
    "EnvOverride",
    "ExtendOverride",
    "InjectOverride",
    "OVERRIDE_TYPES",
    "OverrideKind",
    "OverrideSpec",
    "RemoveOverride",
    "ReplaceOverride",
    "apply_chain",
    "apply_override",
    "coerce_overrides",
    "override_from_mapping",
]
