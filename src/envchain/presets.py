# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Named override chains for common Rust environment shapes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from .errors import ConfigError
from .overrides import AttrsOverride, EnvOverride, ExtendOverride, InjectOverride, OverrideSpec
from .types import COMPILER_IDENTITY


@dataclass(frozen=True, slots=True)
class Preset:
    """A reusable environment shape: name, documentation default and override chain."""

    name: str
    description: str
    environment_name: str
    include_docs: bool
    overrides: tuple[OverrideSpec, ...] = ()


PRESETS: Final[Mapping[str, Preset]] = MappingProxyType(
    {
        "overlay-shell": Preset(
            name="overlay-shell",
            description="Full toolchain from the overlay, documentation included.",
            environment_name="moz_overlay_shell",
            include_docs=True,
        ),
        "ci": Preset(
            name="ci",
            description="CI shell: compiler 'out' output, package manager, coverage and lints.",
            environment_name="rust_ups_shell",
            include_docs=False,
            overrides=(
                AttrsOverride(target=COMPILER_IDENTITY, attrs={"output": "out"}),
                ExtendOverride(tools=("coverage", "lint")),
            ),
        ),
        "shell": Preset(
            name="shell",
            description="Shared shell: compiler carrying clippy and tarpaulin, plus caller extras.",
            environment_name="rust_ups_shell",
            include_docs=False,
            overrides=(
                AttrsOverride(target=COMPILER_IDENTITY, attrs={"extensions": ["clippy", "tarpaulin"]}),
                InjectOverride(),
            ),
        ),
        "dev": Preset(
            name="dev",
            description="Developer shell with language server, formatter, lints and std sources.",
            environment_name="rust_dev_shell",
            include_docs=True,
            overrides=(
                ExtendOverride(tools=("analyzer", "fmt", "lint", "src")),
                EnvOverride(variables={"RUST_SRC_PATH": "{src}/lib/rustlib/src/rust/library"}),
            ),
        ),
    }
)


def get_preset(name: str) -> Preset:
    """Return the preset registered under ``name``.

    Raises:
        ConfigError: If no preset carries ``name``.
    """

    try:
        return PRESETS[name]
    except KeyError as exc:
        raise ConfigError(f"unknown preset '{name}' (available: {', '.join(sorted(PRESETS))})") from exc


__all__ = ["PRESETS", "Preset", "get_preset"]
