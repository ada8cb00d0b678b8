# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Rich renderables for resolved environments and presets."""

from __future__ import annotations

from collections.abc import Iterable

from rich import box
from rich.table import Table

from ..presets import Preset
from ..resolver import ResolvedEnvironment


def build_environment_table(resolved: ResolvedEnvironment) -> Table:
    """Return a table listing the tools of ``resolved`` in order."""

    table = Table(
        title=f"{resolved.name} (channel {resolved.channel})",
        box=box.SIMPLE,
        expand=False,
    )
    table.add_column("Identity", style="bold")
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Extensions", overflow="fold")
    table.add_column("Output")
    table.add_column("Source", overflow="fold")
    for tool in resolved.final_tools:
        table.add_row(
            tool.identity,
            tool.package,
            tool.version or "-",
            ", ".join(tool.extensions) or "-",
            tool.output or "-",
            str(tool.source),
        )
    return table


def build_env_table(resolved: ResolvedEnvironment) -> Table | None:
    """Return a table of environment variables, or ``None`` when there are none."""

    if not resolved.descriptor.env:
        return None
    table = Table(title="Environment", box=box.SIMPLE)
    table.add_column("Variable", style="bold")
    table.add_column("Value", overflow="fold")
    for key, value in sorted(resolved.descriptor.env.items()):
        table.add_row(key, value)
    return table


def build_presets_table(presets: Iterable[Preset]) -> Table:
    """Return a table describing the available presets."""

    table = Table(title="Presets", box=box.SIMPLE)
    table.add_column("Preset", style="bold")
    table.add_column("Environment")
    table.add_column("Docs")
    table.add_column("Steps")
    table.add_column("Description", overflow="fold")
    for preset in presets:
        table.add_row(
            preset.name,
            preset.environment_name,
            "yes" if preset.include_docs else "no",
            " → ".join(step.kind for step in preset.overrides) or "-",
            preset.description,
        )
    return table


__all__ = ["build_env_table", "build_environment_table", "build_presets_table"]
