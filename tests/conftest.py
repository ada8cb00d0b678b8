# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

NIGHTLY_OVERLAY_URL = "https://overlays.example.test/nightly.json"
STABLE_OVERLAY_URL = "https://overlays.example.test/stable.json"


def overlay_document(
    name: str,
    *,
    channels: list[str] | None = None,
    tools: Mapping[str, Mapping[str, Any]] | None = None,
) -> bytes:
    """Return the encoded bytes of an overlay document."""

    payload: dict[str, Any] = {"schemaVersion": "1.0.0", "name": name}
    if channels is not None:
        payload["channels"] = channels
    if tools is not None:
        payload["tools"] = {key: dict(value) for key, value in tools.items()}
    return json.dumps(payload).encode("utf-8")


@dataclass
class FakeFetcher:
    """In-memory fetcher recording every url it was asked for."""

    documents: dict[str, bytes] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def __call__(self, url: str, timeout: float) -> bytes:
        self.calls.append(url)
        try:
            return self.documents[url]
        except KeyError:
            raise ConnectionRefusedError(f"no route to {url}") from None


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Return a fetcher serving a nightly overlay and a stable overlay."""

    return FakeFetcher(
        documents={
            NIGHTLY_OVERLAY_URL: overlay_document(
                "nightly-overlay",
                channels=["nightly", "nightly-2021-03-25"],
                tools={
                    "compiler": {"package": "rustc-nightly", "extensions": ["miri"]},
                    "miri": {"package": "miri", "channelBound": True},
                },
            ),
            STABLE_OVERLAY_URL: overlay_document(
                "stable-overlay",
                channels=["1.50.0", "1.51.0", "stable"],
                tools={"coverage": {"package": "cargo-llvm-cov", "version": "0.4.0"}},
            ),
        }
    )


@pytest.fixture
def write_toml(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper writing TOML text below ``tmp_path``."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content.strip() + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``Path.home`` at an empty directory so user config never leaks in."""

    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home_dir)
    return home_dir


@pytest.fixture
def make_overlay() -> Callable[..., bytes]:
    """Return the overlay document encoder."""

    return overlay_document
