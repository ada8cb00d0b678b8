# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared type aliases and constants for environment resolution."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final, TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | Sequence["JSONValue"] | Mapping[str, "JSONValue"]

COMPILER_IDENTITY: Final[str] = "compiler"
PACKAGE_MANAGER_IDENTITY: Final[str] = "package-manager"
DOCS_EXTENSION: Final[str] = "rust-docs"

BASE_SOURCE_LOCATION: Final[str] = "base"
DEFAULT_ENVIRONMENT_NAME: Final[str] = "envchain_shell"
DEFAULT_CHANNEL: Final[str] = "1.50.0"
DEFAULT_FETCH_TIMEOUT: Final[float] = 30.0

__all__ = [
    "BASE_SOURCE_LOCATION",
    "COMPILER_IDENTITY",
    "DEFAULT_CHANNEL",
    "DEFAULT_ENVIRONMENT_NAME",
    "DEFAULT_FETCH_TIMEOUT",
    "DOCS_EXTENSION",
    "JSONPrimitive",
    "JSONValue",
    "PACKAGE_MANAGER_IDENTITY",
]
