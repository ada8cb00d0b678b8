# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""I/O helpers for decoding overlay documents and bundled JSON resources."""

from __future__ import annotations

import json
from collections.abc import Mapping
from importlib import resources
from typing import Final, cast

from .errors import ConfigError
from .types import JSONValue

DATA_PACKAGE: Final[str] = "envchain.data"


def parse_document(content: bytes, *, context: str) -> Mapping[str, JSONValue]:
    """Decode ``content`` as a UTF-8 JSON object.

    Args:
        content: Raw bytes fetched from an overlay source or bundled resource.
        context: Human-readable context string used in error messages.

    Returns:
        Mapping[str, JSONValue]: Parsed JSON object.

    Raises:
        ConfigError: If the payload is not UTF-8, not JSON, or not a JSON object.
    """
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{context}: document is not valid UTF-8") from exc
    try:
        payload = cast(JSONValue, json.loads(text))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{context}: failed to parse JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(payload, Mapping):
        raise ConfigError(f"{context}: expected a JSON object")
    return payload


def load_resource(name: str) -> Mapping[str, JSONValue]:
    """Load a JSON object bundled in :mod:`envchain.data`.

    Args:
        name: File name of the bundled resource.

    Returns:
        Mapping[str, JSONValue]: Parsed JSON object.
    """
    content = resources.files(DATA_PACKAGE).joinpath(name).read_bytes()
    return parse_document(content, context=f"{DATA_PACKAGE}/{name}")


__all__ = ["DATA_PACKAGE", "load_resource", "parse_document"]
