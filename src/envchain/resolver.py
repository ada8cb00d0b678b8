# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Resolver orchestrating overlay fetch, base build and the override chain."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .checksum import compute_fingerprint
from .descriptor import EnvironmentDescriptor, ExtraHook, build_base
from .errors import ConfigError, FetchError, ResolutionError
from .models import ToolReference
from .overlay import Fetcher, OverlayRegistry
from .overrides import InjectOverride, OverrideSpec, apply_override
from .packages import PackageSet
from .params import ParameterSet
from .presets import Preset, get_preset

LOGGER = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    """States of a single resolution run."""

    INIT = "init"
    OVERLAY_FETCHED = "overlay-fetched"
    BASE_BUILT = "base-built"
    OVERRIDING = "overriding"
    RESOLVED = "resolved"
    FAILED = "failed"


_TRANSITIONS: Mapping[ResolutionState, frozenset[ResolutionState]] = MappingProxyType(
    {
        ResolutionState.INIT: frozenset({ResolutionState.OVERLAY_FETCHED, ResolutionState.FAILED}),
        ResolutionState.OVERLAY_FETCHED: frozenset({ResolutionState.BASE_BUILT, ResolutionState.FAILED}),
        ResolutionState.BASE_BUILT: frozenset(
            {ResolutionState.OVERRIDING, ResolutionState.RESOLVED, ResolutionState.FAILED}
        ),
        ResolutionState.OVERRIDING: frozenset(
            {ResolutionState.OVERRIDING, ResolutionState.RESOLVED, ResolutionState.FAILED}
        ),
        ResolutionState.RESOLVED: frozenset(),
        ResolutionState.FAILED: frozenset(),
    }
)


@dataclass(slots=True)
class ResolutionRun:
    """Track the state machine of one resolution run."""

    state: ResolutionState = ResolutionState.INIT
    history: list[ResolutionState] = field(default_factory=lambda: [ResolutionState.INIT])

    def advance(self, target: ResolutionState) -> None:
        """Move to ``target``; illegal transitions indicate a programming error."""

        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal resolution transition {self.state.value} -> {target.value}")
        LOGGER.debug("resolution state %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)


@dataclass(frozen=True, slots=True)
class ResolvedEnvironment:
    """Terminal, immutable result of a resolution run."""

    descriptor: EnvironmentDescriptor
    final_tools: tuple[ToolReference, ...]
    channel: str
    fingerprint: str

    @classmethod
    def from_descriptor(cls, descriptor: EnvironmentDescriptor, *, channel: str) -> ResolvedEnvironment:
        """Freeze ``descriptor`` into a resolved environment with its fingerprint."""

        payload = _payload(descriptor, channel=channel)
        return cls(
            descriptor=descriptor,
            final_tools=descriptor.tools,
            channel=channel,
            fingerprint=compute_fingerprint(payload),
        )

    @property
    def name(self) -> str:
        """Return the environment name."""

        return self.descriptor.name

    @property
    def tool_set(self) -> frozenset[ToolReference]:
        """Return the final tools as a set."""

        return frozenset(self.final_tools)

    @property
    def build_inputs(self) -> tuple[str, ...]:
        """Return ``identity@version`` labels in descriptor order."""

        return tuple(tool.label for tool in self.final_tools)

    def to_mapping(self) -> dict[str, Any]:
        """Return the shell-style payload handed to an external builder."""

        payload = _payload(self.descriptor, channel=self.channel)
        payload["fingerprint"] = self.fingerprint
        return payload


def _payload(descriptor: EnvironmentDescriptor, *, channel: str) -> dict[str, Any]:
    return {
        "name": descriptor.name,
        "channel": channel,
        "buildInputs": [tool.label for tool in descriptor.tools],
        "tools": [tool.to_mapping() for tool in descriptor.tools],
        "env": dict(sorted(descriptor.env.items())),
    }


def _extra_packages_hook(identities: tuple[str, ...]) -> ExtraHook:
    def hook(packages: PackageSet) -> list[ToolReference]:
        return [packages.reference(identity) for identity in identities]

    hook.__qualname__ = f"extra_packages({', '.join(identities)})"
    return hook


class Resolver:
    """Resolve parameter sets into immutable environments, all-or-nothing.

    A fresh :class:`OverlayRegistry` is used for every run unless ``registry``
    is supplied, in which case its cache is shared across runs.
    """

    def __init__(
        self,
        *,
        registry: OverlayRegistry | None = None,
        fetcher: Fetcher | None = None,
    ) -> None:
        if registry is not None and fetcher is not None:
            raise ValueError("pass either a registry or a fetcher, not both")
        self._registry = registry
        self._fetcher = fetcher

    def resolve(self, params: ParameterSet) -> ResolvedEnvironment:
        """Run the pipeline for ``params``.

        Args:
            params: Validated parameter set.

        Returns:
            ResolvedEnvironment: The final environment.

        Raises:
            ResolutionError: Wrapping the :class:`FetchError` or
                :class:`ConfigError` raised by the failing stage.
        """

        run = ResolutionRun()
        try:
            resolved = self._run(params, run)
        except (FetchError, ConfigError) as exc:
            failed_in = run.state
            run.advance(ResolutionState.FAILED)
            LOGGER.warning("resolution failed during %s: %s", failed_in.value, exc)
            raise ResolutionError(
                f"resolution failed during {failed_in.value}: {exc}",
                state=failed_in.value,
                cause=exc,
            ) from exc
        LOGGER.info(
            "resolved %s on channel %s: %s",
            resolved.name,
            resolved.channel,
            ", ".join(resolved.build_inputs),
        )
        return resolved

    def _run(self, params: ParameterSet, run: ResolutionRun) -> ResolvedEnvironment:
        preset = get_preset(params.preset) if params.preset else None
        spec = params.toolchain_spec(preset)
        registry = self._registry or OverlayRegistry(fetcher=self._fetcher)
        overlays = tuple(registry.resolve_overlay(url, timeout=params.fetch_timeout) for url in params.overlays)
        run.advance(ResolutionState.OVERLAY_FETCHED)

        descriptor = build_base(
            spec,
            overlays,
            name=params.environment_name(preset),
            extra_hook=self._hook_for(params),
        )
        run.advance(ResolutionState.BASE_BUILT)

        for step in self._chain_for(params, preset, descriptor):
            run.advance(ResolutionState.OVERRIDING)
            descriptor = apply_override(descriptor, step)

        resolved = ResolvedEnvironment.from_descriptor(descriptor, channel=spec.version)
        run.advance(ResolutionState.RESOLVED)
        return resolved

    @staticmethod
    def _hook_for(params: ParameterSet) -> ExtraHook | None:
        if params.extra_hook is not None and params.extra_packages:
            raise ConfigError("extra_hook and extra_packages are mutually exclusive")
        if params.extra_hook is not None:
            return params.extra_hook
        if params.extra_packages:
            return _extra_packages_hook(params.extra_packages)
        return None

    @staticmethod
    def _chain_for(
        params: ParameterSet,
        preset: Preset | None,
        descriptor: EnvironmentDescriptor,
    ) -> tuple[OverrideSpec, ...]:
        """Return the preset steps followed by the caller's steps.

        The descriptor's hook runs exactly once: at the first hook-less inject
        step, or at a trailing inject step when the chain has none. Later
        hook-less inject steps are dropped.
        """

        chain: list[OverrideSpec] = []
        hook_consumed = False
        for step in _iter_steps(preset, params):
            if isinstance(step, InjectOverride) and step.hook is None:
                if hook_consumed:
                    continue
                hook_consumed = True
            chain.append(step)
        if descriptor.extra_hook is not None and not hook_consumed:
            chain.append(InjectOverride())
        return tuple(chain)


def _iter_steps(preset: Preset | None, params: ParameterSet) -> Iterable[OverrideSpec]:
    if preset is not None:
        yield from preset.overrides
    yield from params.overrides


def resolve(params: ParameterSet | Mapping[str, Any], *, fetcher: Fetcher | None = None) -> ResolvedEnvironment:
    """Resolve ``params`` with a fresh registry.

    Raises:
        ResolutionError: If any stage fails.
    """

    if not isinstance(params, ParameterSet):
        try:
            params = ParameterSet.from_mapping(params)
        except ConfigError as exc:
            raise ResolutionError(
                f"resolution failed during {ResolutionState.INIT.value}: {exc}",
                state=ResolutionState.INIT.value,
                cause=exc,
            ) from exc
    return Resolver(fetcher=fetcher).resolve(params)


__all__ = [
    "ResolutionRun",
    "ResolutionState",
    "ResolvedEnvironment",
    "Resolver",
    "resolve",
]
