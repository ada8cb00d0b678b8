# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Environment descriptors and the base descriptor builder."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TypeAlias

from .channels import ensure_known_channel
from .errors import ConfigError
from .models import ToolchainSpec, ToolReference
from .overlay import OverlaySource
from .packages import PackageSet
from .types import COMPILER_IDENTITY, DEFAULT_ENVIRONMENT_NAME, DOCS_EXTENSION, PACKAGE_MANAGER_IDENTITY

LOGGER = logging.getLogger(__name__)

ExtraHook: TypeAlias = Callable[[PackageSet], Iterable[ToolReference | str]]


def merge_tools(
    existing: Iterable[ToolReference],
    incoming: Iterable[ToolReference],
) -> tuple[ToolReference, ...]:
    """Combine tool sequences so later entries shadow earlier ones by identity.

    A shadowed identity keeps the position of its first occurrence.
    """

    slots: dict[str, ToolReference] = {}
    for tool in (*existing, *incoming):
        slots[tool.identity] = tool
    return tuple(slots.values())


@dataclass(frozen=True, slots=True)
class EnvironmentDescriptor:
    """Named, ordered set of tool references describing one buildable environment."""

    name: str
    tools: tuple[ToolReference, ...] = ()
    extra_hook: ExtraHook | None = field(default=None, compare=False)
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    packages: PackageSet = field(default_factory=PackageSet.build, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Enforce unique identities and freeze the environment mapping."""

        if not self.name:
            raise ConfigError("environment descriptor requires a name")
        object.__setattr__(self, "tools", merge_tools((), self.tools))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @property
    def identities(self) -> tuple[str, ...]:
        """Return tool identities in descriptor order."""

        return tuple(tool.identity for tool in self.tools)

    def tool(self, identity: str) -> ToolReference | None:
        """Return the tool registered under ``identity`` if present."""

        for tool in self.tools:
            if tool.identity == identity:
                return tool
        return None

    def with_tools(self, tools: Iterable[ToolReference]) -> EnvironmentDescriptor:
        """Return a copy whose tool list is replaced by ``tools``."""

        return replace(self, tools=tuple(tools))

    def extended(self, tools: Iterable[ToolReference]) -> EnvironmentDescriptor:
        """Return a copy with ``tools`` appended, shadowing shared identities."""

        return self.with_tools(merge_tools(self.tools, tools))

    def with_env(self, variables: Mapping[str, str]) -> EnvironmentDescriptor:
        """Return a copy with ``variables`` merged into the environment."""

        return replace(self, env={**self.env, **variables})


def build_base(
    spec: ToolchainSpec,
    overlays: OverlaySource | Sequence[OverlaySource] | None = None,
    *,
    name: str = DEFAULT_ENVIRONMENT_NAME,
    packages: PackageSet | None = None,
    extra_hook: ExtraHook | None = None,
) -> EnvironmentDescriptor:
    """Produce the minimal descriptor holding the compiler and package manager.

    Args:
        spec: Requested toolchain.
        overlays: Overlay source(s) merged over the base registry, in order.
        name: Descriptor name.
        packages: Pre-built package universe; built from ``overlays`` when omitted.
        extra_hook: Caller-supplied package injection hook carried by the descriptor.

    Returns:
        EnvironmentDescriptor: Base descriptor for ``spec``.

    Raises:
        ConfigError: If ``spec.version`` does not resolve to a known channel or
            the package universe lacks a compiler or package manager.
    """

    if isinstance(overlays, OverlaySource):
        overlays = (overlays,)
    if packages is None:
        packages = PackageSet.build(tuple(overlays or ()), channel=spec.version)
    else:
        packages = packages.bind(spec.version)
    ensure_known_channel(spec.version, packages.known_channels)

    compiler = packages.reference(COMPILER_IDENTITY)
    compiler = replace(compiler, extensions=compiler.extensions + spec.sorted_extensions)
    if spec.include_docs:
        compiler = replace(compiler, extensions=compiler.extensions + (DOCS_EXTENSION,))
    else:
        compiler = compiler.without_extensions(DOCS_EXTENSION)
    package_manager = packages.reference(PACKAGE_MANAGER_IDENTITY).without_extensions(DOCS_EXTENSION)

    LOGGER.debug(
        "built base descriptor %s on channel %s (docs=%s, extensions=%s)",
        name,
        spec.version,
        spec.include_docs,
        ",".join(spec.sorted_extensions) or "-",
    )
    return EnvironmentDescriptor(
        name=name,
        tools=(compiler, package_manager),
        extra_hook=extra_hook,
        packages=packages,
    )


__all__ = ["EnvironmentDescriptor", "ExtraHook", "build_base", "merge_tools"]
