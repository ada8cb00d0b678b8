# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for toolchain and tool reference value models."""

from __future__ import annotations

import dataclasses

import pytest

from envchain.errors import ConfigError
from envchain.models import ToolchainSpec, ToolReference, ToolSource


def test_toolchain_spec_normalises_channel_and_extensions() -> None:
    spec = ToolchainSpec(version=" 1.50.0 ", extensions=frozenset({"rust-src", "clippy"}))

    assert spec.version == "1.50.0"
    assert spec.include_docs is True
    assert spec.sorted_extensions == ("clippy", "rust-src")


def test_toolchain_spec_rejects_bad_extension_name() -> None:
    with pytest.raises(ConfigError, match="malformed extension name"):
        ToolchainSpec(version="1.50.0", extensions=frozenset({"Bad Name"}))


def test_tool_reference_is_immutable() -> None:
    tool = ToolReference(identity="compiler", package="rustc", version="1.50.0")

    with pytest.raises(dataclasses.FrozenInstanceError):
        tool.version = "1.51.0"  # type: ignore[misc]


def test_tool_reference_label_and_source() -> None:
    tool = ToolReference(identity="lint", package="clippy", version="1.50.0")
    overlay_tool = ToolReference(
        identity="miri",
        package="miri",
        source=ToolSource.overlay("https://overlays.example.test/nightly.json"),
    )

    assert tool.label == "lint@1.50.0"
    assert str(tool) == "lint@1.50.0"
    assert str(tool.source) == "base"
    assert overlay_tool.label == "miri"
    assert str(overlay_tool.source) == "overlay:https://overlays.example.test/nightly.json"


def test_tool_reference_deduplicates_extensions() -> None:
    tool = ToolReference(identity="compiler", package="rustc", extensions=("clippy", "rust-docs", "clippy"))

    assert tool.extensions == ("clippy", "rust-docs")
    assert tool.carries_documentation
    assert not tool.without_extensions("rust-docs").carries_documentation


@pytest.mark.parametrize("identity", ["", "Compiler", "-lint", "has space"])
def test_tool_reference_rejects_malformed_identity(identity: str) -> None:
    with pytest.raises(ConfigError):
        ToolReference(identity=identity, package="rustc")


def test_override_attrs_mapping_extends_extensions() -> None:
    tool = ToolReference(identity="compiler", package="rustc", version="1.50.0", extensions=("rust-docs",))

    updated = tool.override_attrs({"extensions": ["clippy", "rust-docs"], "output": "out"})

    assert updated.extensions == ("rust-docs", "clippy")
    assert updated.output == "out"
    assert tool.output is None


def test_override_attrs_callable_replaces_fields() -> None:
    tool = ToolReference(identity="compiler", package="rustc", version="1.50.0", extensions=("rust-docs",))

    updated = tool.override_attrs(lambda current: {"extensions": [], "version": "1.51.0"})

    assert updated.extensions == ()
    assert updated.label == "compiler@1.51.0"


def test_override_attrs_rejects_identity_change() -> None:
    tool = ToolReference(identity="compiler", package="rustc")

    with pytest.raises(ConfigError, match="cannot override attribute"):
        tool.override_attrs({"identity": "other"})


def test_from_mapping_round_trips_to_mapping() -> None:
    tool = ToolReference.from_mapping(
        {"identity": "compiler", "package": "rustc-nightly", "version": "nightly", "extensions": ["miri"]},
        context="replacement",
    )

    assert tool.to_mapping() == {
        "identity": "compiler",
        "package": "rustc-nightly",
        "version": "nightly",
        "extensions": ["miri"],
        "output": None,
        "source": "base",
    }


def test_from_mapping_requires_package() -> None:
    with pytest.raises(ConfigError, match="'package'"):
        ToolReference.from_mapping({"identity": "compiler"}, context="replacement")
