# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for override chain steps."""

from __future__ import annotations

import pytest

from envchain.descriptor import EnvironmentDescriptor, build_base
from envchain.errors import ConfigError
from envchain.models import ToolchainSpec, ToolReference
from envchain.overrides import (
    AttrsOverride,
    EnvOverride,
    ExtendOverride,
    InjectOverride,
    RemoveOverride,
    ReplaceOverride,
    apply_chain,
    apply_override,
    coerce_overrides,
    override_from_mapping,
)


@pytest.fixture
def base() -> EnvironmentDescriptor:
    return build_base(ToolchainSpec(version="1.50.0", include_docs=False))


def test_extend_adds_tools_from_the_package_universe(base: EnvironmentDescriptor) -> None:
    extended = apply_override(base, ExtendOverride(tools=("lint", "coverage")))

    assert extended.identities == ("compiler", "package-manager", "lint", "coverage")
    assert not any(tool.carries_documentation for tool in extended.tools)
    assert base.identities == ("compiler", "package-manager")


def test_extend_accepts_a_single_reference(base: EnvironmentDescriptor) -> None:
    custom = ToolReference(identity="bindgen", package="rust-bindgen", version="0.57.0")

    extended = apply_override(base, ExtendOverride(tools=custom))

    assert extended.tool("bindgen") == custom


def test_later_step_wins_on_identity_conflict(base: EnvironmentDescriptor) -> None:
    pinned = ToolReference(identity="lint", package="clippy", version="1.51.0")

    final = apply_chain(base, [ExtendOverride(tools=("lint",)), ExtendOverride(tools=(pinned,))])

    assert [tool for tool in final.tools if tool.identity == "lint"] == [pinned]
    assert final.identities == ("compiler", "package-manager", "lint")


def test_replace_keeps_exactly_one_compiler(base: EnvironmentDescriptor) -> None:
    replacement = ToolReference(identity="compiler", package="rustc-nightly", version="nightly")

    final = apply_override(base, ReplaceOverride(target="compiler", replacement=replacement))

    compilers = [tool for tool in final.tools if tool.identity == "compiler"]
    assert compilers == [replacement]
    assert final.identities == ("compiler", "package-manager")


def test_replace_with_different_identity_takes_target_position(base: EnvironmentDescriptor) -> None:
    final = apply_chain(
        base,
        [ExtendOverride(tools=("lint",)), ReplaceOverride(target="compiler", replacement="lint")],
    )

    assert final.identities == ("lint", "package-manager")


def test_replace_unknown_target_raises(base: EnvironmentDescriptor) -> None:
    with pytest.raises(ConfigError, match="cannot replace unknown tool 'lint'"):
        apply_override(base, ReplaceOverride(target="lint", replacement="coverage"))


def test_remove_drops_identities_and_ignores_absent(base: EnvironmentDescriptor) -> None:
    final = apply_override(base, RemoveOverride(identities=("package-manager", "audit")))

    assert final.identities == ("compiler",)


def test_attrs_override_updates_target_in_place(base: EnvironmentDescriptor) -> None:
    final = apply_override(
        base,
        AttrsOverride(target="compiler", attrs={"extensions": ["clippy", "tarpaulin"], "output": "out"}),
    )

    compiler = final.tool("compiler")
    assert compiler.extensions == ("clippy", "tarpaulin")
    assert compiler.output == "out"
    assert final.identities == ("compiler", "package-manager")


def test_attrs_override_unknown_target_raises(base: EnvironmentDescriptor) -> None:
    with pytest.raises(ConfigError):
        apply_override(base, AttrsOverride(target="lint", attrs={"output": "out"}))


def test_env_override_expands_tool_labels(base: EnvironmentDescriptor) -> None:
    final = apply_chain(
        base,
        [
            ExtendOverride(tools=("src",)),
            EnvOverride(variables={"RUST_SRC_PATH": "{src}/lib/rustlib/src/rust/library", "RUST_BACKTRACE": "1"}),
        ],
    )

    assert dict(final.env) == {
        "RUST_SRC_PATH": "src@1.50.0/lib/rustlib/src/rust/library",
        "RUST_BACKTRACE": "1",
    }


@pytest.mark.parametrize("template", ["{src}/lib", "{compiler.version}", "{compiler[x]}"])
def test_env_override_unknown_reference_raises(base: EnvironmentDescriptor, template: str) -> None:
    with pytest.raises(ConfigError, match="cannot expand"):
        apply_override(base, EnvOverride(variables={"RUST_SRC_PATH": template}))


def test_inject_uses_descriptor_hook(base: EnvironmentDescriptor) -> None:
    calls: list[str] = []

    def hook(packages):
        calls.append(packages.channel)
        return [packages["coverage"], "audit"]

    descriptor = build_base(ToolchainSpec(version="1.50.0"), extra_hook=hook)

    final = apply_override(descriptor, InjectOverride())

    assert final.identities == ("compiler", "package-manager", "coverage", "audit")
    assert calls == ["1.50.0"]


def test_inject_without_hook_is_identity(base: EnvironmentDescriptor) -> None:
    assert apply_override(base, InjectOverride()) == base


def test_inject_hook_unknown_package_raises(base: EnvironmentDescriptor) -> None:
    with pytest.raises(ConfigError, match="unknown package"):
        apply_override(base, InjectOverride(hook=lambda packages: [packages["valgrind"]]))


def test_empty_chain_is_identity(base: EnvironmentDescriptor) -> None:
    assert apply_chain(base, []) is base


def test_chain_is_idempotent(base: EnvironmentDescriptor) -> None:
    chain = [
        ExtendOverride(tools=("lint", "coverage")),
        AttrsOverride(target="compiler", attrs={"output": "out"}),
        RemoveOverride(identities="coverage"),
    ]

    assert apply_chain(base, chain) == apply_chain(base, chain)


def test_apply_override_rejects_unknown_step(base: EnvironmentDescriptor) -> None:
    with pytest.raises(ConfigError, match="unsupported override step"):
        apply_override(base, object())  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("table", "expected_type"),
    [
        ({"kind": "extend", "tools": ["lint"]}, ExtendOverride),
        ({"kind": "replace", "target": "compiler", "replacement": "lint"}, ReplaceOverride),
        (
            {"kind": "replace", "target": "compiler", "replacement": {"identity": "compiler", "package": "rustc"}},
            ReplaceOverride,
        ),
        ({"kind": "inject"}, InjectOverride),
        ({"kind": "remove", "tools": ["lint"]}, RemoveOverride),
        ({"kind": "override-attrs", "target": "compiler", "attrs": {"output": "out"}}, AttrsOverride),
        ({"kind": "set-env", "variables": {"RUST_BACKTRACE": "1"}}, EnvOverride),
    ],
)
def test_override_from_mapping_builds_each_kind(table, expected_type) -> None:
    step = override_from_mapping(table, context="overrides[0]")

    assert isinstance(step, expected_type)
    assert step.kind == table["kind"]


def test_override_from_mapping_rejects_unknown_kind() -> None:
    with pytest.raises(ConfigError, match="unknown override kind 'merge'"):
        override_from_mapping({"kind": "merge"}, context="overrides[0]")


def test_coerce_overrides_reports_index() -> None:
    with pytest.raises(ConfigError, match=r"overrides\[1\]"):
        coerce_overrides([ExtendOverride(tools=("lint",)), 42])
