# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Checksum utilities for overlay content and resolved environments."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping

from .types import JSONValue


def content_digest(content: bytes) -> str:
    """Return the hex-encoded SHA-256 digest of raw overlay ``content``."""

    return hashlib.sha256(content).hexdigest()


def compute_fingerprint(payload: Mapping[str, JSONValue]) -> str:
    """Calculate a deterministic fingerprint for a JSON ``payload``.

    Args:
        payload: JSON-compatible mapping describing a resolved environment.

    Returns:
        str: Hex-encoded SHA-256 checksum of the canonical JSON encoding.
    """
    hasher = hashlib.sha256()
    hasher.update(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8"))
    return hasher.hexdigest()


__all__ = ["compute_fingerprint", "content_digest"]
