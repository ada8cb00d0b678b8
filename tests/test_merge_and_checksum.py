# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for JSON merge, document parsing and checksum helpers."""

from __future__ import annotations

import pytest

from envchain.checksum import compute_fingerprint, content_digest
from envchain.errors import ConfigError
from envchain.io import parse_document
from envchain.merge import merge_json_objects
from envchain.schema import default_schemas
from envchain.utils import thaw_json_value


def test_merge_json_objects_rules() -> None:
    base = {"compiler": {"package": "rustc", "extensions": ["clippy"], "channelBound": True}}
    overlay = {"compiler": {"package": "rustc-nightly", "extensions": ["clippy", "miri"]}, "miri": {"package": "miri"}}

    merged = merge_json_objects(base, overlay, context="test")

    assert thaw_json_value(merged) == {
        "compiler": {"package": "rustc-nightly", "extensions": ["clippy", "miri"], "channelBound": True},
        "miri": {"package": "miri"},
    }
    assert base["compiler"]["package"] == "rustc"


def test_merged_mapping_is_read_only() -> None:
    merged = merge_json_objects({"a": 1}, {"b": 2}, context="test")

    with pytest.raises(TypeError):
        merged["c"] = 3  # type: ignore[index]


def test_parse_document_requires_object() -> None:
    with pytest.raises(ConfigError, match="expected a JSON object"):
        parse_document(b'"text"', context="overlay")


def test_fingerprint_ignores_key_order() -> None:
    assert compute_fingerprint({"a": 1, "b": [1, 2]}) == compute_fingerprint({"b": [1, 2], "a": 1})
    assert compute_fingerprint({"a": 1}) != compute_fingerprint({"a": 2})


def test_content_digest_is_sha256() -> None:
    assert content_digest(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_schema_reports_json_path() -> None:
    document = {"schemaVersion": "1.0.0", "name": "x", "tools": {"compiler": {"package": 3}}}

    with pytest.raises(ConfigError, match="tools/compiler/package"):
        default_schemas().validate_overlay(document, context="overlay")
