# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Helpers for validating toolchain channel identifiers."""

from __future__ import annotations

import re
from collections.abc import Collection
from typing import Final

from packaging.version import InvalidVersion, Version

from .errors import ConfigError

NAMED_CHANNELS: Final[frozenset[str]] = frozenset({"stable", "beta", "nightly"})
_DATED_CHANNEL: Final[re.Pattern[str]] = re.compile(r"^(beta|nightly)-(\d{4})-(\d{2})-(\d{2})$")
_VERSION_CHANNEL: Final[re.Pattern[str]] = re.compile(r"^\d+\.\d+(?:\.\d+)?$")


def is_named_channel(value: str) -> bool:
    """Return ``True`` when ``value`` is a named (possibly dated) release channel."""

    return value in NAMED_CHANNELS or _DATED_CHANNEL.match(value) is not None


def normalize_channel(value: str, *, context: str = "channel") -> str:
    """Return ``value`` stripped and validated as a channel identifier.

    Accepts semantic-version-like identifiers (``1.50.0``, ``1.50``) and the
    named channels ``stable``, ``beta`` and ``nightly`` (optionally dated, as in
    ``nightly-2021-03-25``).

    Args:
        value: Raw channel identifier supplied by the caller.
        context: Prefix used in error messages.

    Returns:
        str: The validated channel identifier.

    Raises:
        ConfigError: If ``value`` is empty or not channel-like.
    """

    candidate = value.strip() if isinstance(value, str) else ""
    if not candidate:
        raise ConfigError(f"{context}: channel must be a non-empty string")
    if is_named_channel(candidate):
        return candidate
    if _VERSION_CHANNEL.match(candidate) is None:
        raise ConfigError(f"{context}: '{candidate}' is not a version or named channel")
    try:
        Version(candidate)
    except InvalidVersion as exc:  # pragma: no cover - regex already constrains the shape
        raise ConfigError(f"{context}: '{candidate}' is not a valid version") from exc
    return candidate


def ensure_known_channel(channel: str, known: Collection[str] | None) -> str:
    """Return ``channel`` when it resolves against ``known`` channels.

    Args:
        channel: Validated channel identifier.
        known: Channels declared by overlays, or ``None`` when no overlay
            restricts the set and any well-formed channel is accepted.

    Returns:
        str: ``channel`` unchanged.

    Raises:
        ConfigError: If ``known`` is provided and does not contain ``channel``.
    """

    normalized = normalize_channel(channel)
    if known is not None and normalized not in known:
        available = ", ".join(sorted(known, key=_channel_sort_key)) or "<none>"
        raise ConfigError(f"unknown channel '{normalized}' (available: {available})")
    return normalized


def _channel_sort_key(channel: str) -> tuple[int, Version | str]:
    if _VERSION_CHANNEL.match(channel):
        return (0, Version(channel))
    return (1, channel)


__all__ = ["NAMED_CHANNELS", "ensure_known_channel", "is_named_channel", "normalize_channel"]
