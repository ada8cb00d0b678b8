# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Composable, parameterized Rust toolchain environment resolver."""

from __future__ import annotations

from importlib import metadata

from .descriptor import EnvironmentDescriptor, build_base
from .errors import ConfigError, EnvchainError, FetchError, ResolutionError
from .models import ToolchainSpec, ToolReference, ToolSource
from .overlay import OverlayRegistry, OverlaySource
from .overrides import (
    AttrsOverride,
    EnvOverride,
    ExtendOverride,
    InjectOverride,
    RemoveOverride,
    ReplaceOverride,
    apply_chain,
    apply_override,
)
from .packages import PackageSet
from .params import ParameterSet
from .presets import PRESETS, get_preset
from .resolver import ResolutionState, ResolvedEnvironment, Resolver, resolve

try:
    __version__ = metadata.version("envchain")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"

__all__ = [
    "AttrsOverride",
    "ConfigError",
    "EnvOverride",
    "EnvchainError",
    "EnvironmentDescriptor",
    "ExtendOverride",
    "FetchError",
    "InjectOverride",
    "OverlayRegistry",
    "OverlaySource",
    "PRESETS",
    "PackageSet",
    "ParameterSet",
    "RemoveOverride",
    "ReplaceOverride",
    "ResolutionError",
    "ResolutionState",
    "ResolvedEnvironment",
    "Resolver",
    "ToolReference",
    "ToolSource",
    "ToolchainSpec",
    "__version__",
    "apply_chain",
    "apply_override",
    "build_base",
    "get_preset",
    "resolve",
]
