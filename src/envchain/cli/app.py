# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring the resolve, presets and config commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final

import typer

from ..config import ConfigLoader, ConfigLoadResult
from ..errors import ConfigError, ResolutionError
from ..logging import configure_verbose_logging, detect_tty
from ..overrides import coerce_overrides
from ..presets import PRESETS
from ..resolver import ResolvedEnvironment, Resolver
from .rendering import build_env_table, build_environment_table, build_presets_table
from .shared import CLIError, CLILogger, build_cli_logger, register_command

JSON_FORMAT: Final[str] = "json"
TABLE_FORMAT: Final[str] = "table"
_FORMATS: Final[frozenset[str]] = frozenset({JSON_FORMAT, TABLE_FORMAT})

app = typer.Typer(help="Resolve parameterized Rust toolchain environments.", no_args_is_help=True)
config_app = typer.Typer(help="Inspect the layered envchain configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")


@register_command(app, name="resolve", help_text="Resolve an environment and print its tools.")
def resolve_command(
    root: Path | None = typer.Option(None, "--root", "-r", help="Project root for config discovery (default: cwd)."),
    channel: str | None = typer.Option(None, "--channel", "-c", help="Channel name or version, e.g. 1.50.0."),
    overlay: list[str] | None = typer.Option(None, "--overlay", "-o", help="Overlay URL (repeatable)."),
    docs: bool | None = typer.Option(None, "--docs/--no-docs", help="Include compiler documentation."),
    extension: list[str] | None = typer.Option(None, "--extension", "-e", help="Compiler extension (repeatable)."),
    preset: str | None = typer.Option(None, "--preset", "-p", help="Named preset to apply first."),
    extend: list[str] | None = typer.Option(None, "--extend", help="Tool to add after config overrides (repeatable)."),
    remove: list[str] | None = typer.Option(None, "--remove", help="Tool to drop after config overrides (repeatable)."),
    env: list[str] | None = typer.Option(None, "--env", help="KEY=VALUE set after config overrides (repeatable)."),
    extra_package: list[str] | None = typer.Option(
        None,
        "--extra-package",
        help="Package identity supplied through the extra hook (repeatable).",
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Environment name."),
    timeout: float | None = typer.Option(None, "--timeout", help="Overlay fetch timeout in seconds."),
    output_format: str = typer.Option(TABLE_FORMAT, "--format", "-f", case_sensitive=False, help="table or json."),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in status output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Stream debug logging to stderr."),
) -> None:
    """Resolve the configured environment and print the result."""

    fmt = output_format.lower()
    if fmt not in _FORMATS:
        raise typer.BadParameter(f"unsupported format '{output_format}' (choose json or table)")
    configure_verbose_logging(verbose)
    logger = build_cli_logger(emoji=emoji, debug=verbose, no_color=not detect_tty())

    try:
        cli_values = _cli_values(
            channel=channel,
            overlays=overlay,
            include_docs=docs,
            extensions=extension,
            preset=preset,
            extra_packages=extra_package,
            name=name,
            fetch_timeout=timeout,
        )
        params = ConfigLoader.for_root(root or Path.cwd(), cli_values=cli_values).load()
        steps = coerce_overrides(_cli_steps(extend=extend, remove=remove, env=env), context="command line")
        if steps:
            params = params.model_copy(update={"overrides": params.overrides + steps})
        logger.debug(f"parameters: {json.dumps(params.describe(), sort_keys=True)}")
        resolved = Resolver().resolve(params)
    except (CLIError, ConfigError, ResolutionError) as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=getattr(exc, "exit_code", 1)) from exc

    if fmt == JSON_FORMAT:
        logger.echo(json.dumps(resolved.to_mapping(), indent=2, sort_keys=True))
        return
    _render_table(resolved, logger)


@register_command(app, name="presets", help_text="List the built-in presets.")
def presets_command(
    output_format: str = typer.Option(TABLE_FORMAT, "--format", "-f", case_sensitive=False, help="table or json."),
) -> None:
    """List the built-in presets."""

    logger = build_cli_logger(emoji=False, no_color=not detect_tty())
    if output_format.lower() == JSON_FORMAT:
        payload = {
            preset.name: {
                "description": preset.description,
                "environment": preset.environment_name,
                "includeDocs": preset.include_docs,
                "overrides": [step.kind for step in preset.overrides],
            }
            for preset in PRESETS.values()
        }
        logger.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    logger.console.print(build_presets_table(PRESETS.values()))


@register_command(config_app, name="show", help_text="Print the effective parameters for the project.")
def config_show(
    root: Path | None = typer.Option(None, "--root", "-r", help="Project root (default: cwd)."),
    trace: bool = typer.Option(True, help="Show which source last set each field."),
    strict: bool = typer.Option(False, "--strict", help="Treat configuration warnings as errors."),
) -> None:
    """Print the effective parameters for the project."""

    logger = build_cli_logger(emoji=True, no_color=not detect_tty())
    try:
        result = ConfigLoader.for_root(root or Path.cwd()).load_with_trace(strict=strict)
    except ConfigError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc

    logger.echo(json.dumps(result.parameters.describe(), indent=2, sort_keys=True))
    if trace and result.updates:
        logger.echo("\n# Overrides")
        for line in summarise_updates(result):
            logger.echo(line)
    if result.warnings:
        logger.echo("\n# Warnings")
        for warning in result.warnings:
            logger.warn(f"- {warning}")


def summarise_updates(result: ConfigLoadResult) -> list[str]:
    """Return one ``field <- source: value`` line per recorded update."""

    return [
        f"- {update.field} <- {update.source}: {json.dumps(update.value, default=str)}"
        for update in result.updates
    ]


def _cli_values(**values: Any) -> dict[str, Any]:
    """Translate command-line options into a configuration fragment."""

    fragment: dict[str, Any] = {}
    for key, value in values.items():
        if value is None or (isinstance(value, (list, tuple)) and not value):
            continue
        fragment[key] = list(value) if isinstance(value, tuple) else value
    return fragment


def _cli_steps(
    *,
    extend: list[str] | None,
    remove: list[str] | None,
    env: list[str] | None,
) -> list[dict[str, Any]]:
    """Return override tables appended to the configured chain."""

    steps: list[dict[str, Any]] = []
    if extend:
        steps.append({"kind": "extend", "tools": list(extend)})
    if remove:
        steps.append({"kind": "remove", "tools": list(remove)})
    if env:
        steps.append({"kind": "set-env", "variables": _parse_env(env)})
    return steps


def _parse_env(pairs: list[str]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise CLIError(f"--env expects KEY=VALUE, got '{pair}'", exit_code=2)
        variables[key.strip()] = value
    return variables


def _render_table(resolved: ResolvedEnvironment, logger: CLILogger) -> None:
    logger.console.print(build_environment_table(resolved))
    env_table = build_env_table(resolved)
    if env_table is not None:
        logger.console.print(env_table)
    logger.ok(f"{resolved.name}: {len(resolved.final_tools)} tools (fingerprint {resolved.fingerprint[:12]})")


__all__ = ["app", "config_app", "summarise_updates"]
