# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Attribute-merge helper used when layering overlay tool tables."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import cast

from .types import JSONValue
from .utils import freeze_json_value


def merge_json_objects(
    base: Mapping[str, JSONValue],
    overlay: Mapping[str, JSONValue],
    *,
    context: str,
) -> Mapping[str, JSONValue]:
    """Recursively merge JSON mappings without mutating inputs.

    Nested mappings merge key by key, arrays concatenate with duplicates
    dropped (first occurrence wins its position) and scalars from ``overlay``
    replace those in ``base``.

    Args:
        base: Base JSON mapping.
        overlay: Mapping whose values override or extend *base*.
        context: Context string used for error reporting.

    Returns:
        Mapping[str, JSONValue]: Frozen mapping representing the merged result.
    """
    merged: dict[str, JSONValue] = {}
    for key, value in base.items():
        merged[key] = freeze_json_value(value, context=f"{context}.{key}")
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_json_objects(
                cast("Mapping[str, JSONValue]", merged[key]),
                cast("Mapping[str, JSONValue]", value),
                context=f"{context}.{key}",
            )
        else:
            frozen_value = freeze_json_value(value, context=f"{context}.{key}")
            existing = merged.get(key)
            if isinstance(existing, tuple) and isinstance(frozen_value, tuple):
                merged[key] = tuple(dict.fromkeys(existing + frozen_value))
            else:
                merged[key] = frozen_value
    return MappingProxyType(merged)


__all__ = ["merge_json_objects"]
