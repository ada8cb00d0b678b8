# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Utility helpers for validating and normalising registry and overlay JSON."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from .errors import ConfigError
from .types import JSONValue


def expect_string(value: JSONValue | None, *, key: str, context: str) -> str:
    """Return ``value`` coerced to ``str`` or raise a configuration error.

    Args:
        value: Raw JSON value extracted from the payload.
        key: Attribute name used in error messages.
        context: Human-friendly prefix describing the validation context.

    Returns:
        str: Value coerced to a string.

    Raises:
        ConfigError: If ``value`` is not a non-empty string.
    """
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{context}: expected '{key}' to be a non-empty string")
    return value


def optional_string(value: JSONValue | None, *, key: str, context: str) -> str | None:
    """Return ``value`` as an optional string with validation.

    Args:
        value: Raw JSON value extracted from the payload.
        key: Attribute name used in error messages.
        context: Human-friendly prefix describing the validation context.

    Returns:
        str | None: ``value`` when present, otherwise ``None``.

    Raises:
        ConfigError: If ``value`` is present but not a string.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{context}: expected '{key}' to be a string if present")
    return value


def optional_bool(
    value: JSONValue | None,
    *,
    key: str,
    context: str,
    default: bool,
) -> bool:
    """Return ``value`` coerced to ``bool`` falling back to ``default``.

    Raises:
        ConfigError: If ``value`` is present but not a boolean.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ConfigError(f"{context}: expected '{key}' to be a boolean")


def string_array(value: JSONValue | None, *, key: str, context: str) -> tuple[str, ...]:
    """Return ``value`` as a tuple of strings with validation.

    Args:
        value: Raw JSON value extracted from the payload.
        key: Attribute name used in error messages.
        context: Human-friendly prefix describing the validation context.

    Returns:
        tuple[str, ...]: Tuple containing all string entries from ``value``.

    Raises:
        ConfigError: If ``value`` is not a sequence of strings.
    """
    if value is None:
        return ()
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes, bytearray)):
        raise ConfigError(f"{context}: expected '{key}' to be an array of strings")
    result: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigError(f"{context}: expected '{key}[{index}]' to be a string")
        result.append(item)
    return tuple(result)


def expect_mapping(value: JSONValue | None, *, key: str, context: str) -> Mapping[str, JSONValue]:
    """Return ``value`` as a mapping of JSON values or raise an error.

    Raises:
        ConfigError: If ``value`` is not a mapping.
    """
    if not isinstance(value, Mapping):
        raise ConfigError(f"{context}: expected '{key}' to be an object")
    return value


def string_mapping(value: JSONValue | None, *, key: str, context: str) -> Mapping[str, str]:
    """Return ``value`` as a mapping of strings.

    Raises:
        ConfigError: If ``value`` is not a mapping of strings.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{context}: expected '{key}' to be an object")
    result: dict[str, str] = {}
    for item_key, item_value in value.items():
        if not isinstance(item_key, str) or not isinstance(item_value, str):
            raise ConfigError(f"{context}: expected '{key}' to be a mapping of strings")
        result[item_key] = item_value
    return result


def freeze_json_mapping(value: Mapping[str, JSONValue], *, context: str) -> Mapping[str, JSONValue]:
    """Return an immutable mapping with recursively frozen JSON values.

    Raises:
        ConfigError: If any key is not a string.
    """
    frozen: dict[str, JSONValue] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ConfigError(f"{context}: expected keys to be strings")
        frozen[key] = freeze_json_value(item, context=f"{context}.{key}")
    return MappingProxyType(frozen)


def freeze_json_value(value: JSONValue, *, context: str) -> JSONValue:
    """Return a recursively frozen view of ``value``.

    Mappings become mapping proxies and sequences become tuples.

    Raises:
        ConfigError: If ``value`` is not JSON compatible.
    """
    if isinstance(value, Mapping):
        return freeze_json_mapping(value, context=context)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return tuple(freeze_json_value(item, context=context) for item in value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    raise ConfigError(f"{context}: unsupported JSON value type {type(value).__name__}")


def thaw_json_value(value: JSONValue) -> JSONValue:
    """Return a plain JSON-compatible representation of ``value``."""

    if isinstance(value, Mapping):
        return {str(key): thaw_json_value(item) for key, item in value.items()}
    if isinstance(value, (tuple, list)):
        return [thaw_json_value(item) for item in value]
    return value


__all__ = [
    "expect_mapping",
    "expect_string",
    "freeze_json_mapping",
    "freeze_json_value",
    "optional_bool",
    "optional_string",
    "string_array",
    "string_mapping",
    "thaw_json_value",
]
