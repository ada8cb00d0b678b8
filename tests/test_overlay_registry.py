# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for overlay fetching, validation and caching."""

from __future__ import annotations

import http.client
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from envchain.errors import FetchError
from envchain.overlay import OverlayRegistry, fetch_url

NIGHTLY = "https://overlays.example.test/nightly.json"


def test_resolve_overlay_parses_document(fetcher) -> None:
    registry = OverlayRegistry(fetcher=fetcher)

    overlay = registry.resolve_overlay(NIGHTLY)

    assert overlay.url == NIGHTLY
    assert overlay.name == "nightly-overlay"
    assert overlay.channels == ("nightly", "nightly-2021-03-25")
    assert set(overlay.tools) == {"compiler", "miri"}
    assert len(overlay.digest) == 64


def test_resolve_overlay_caches_by_url(fetcher) -> None:
    registry = OverlayRegistry(fetcher=fetcher)

    first = registry.resolve_overlay(NIGHTLY)
    second = registry.resolve_overlay(NIGHTLY)

    assert first is second
    assert fetcher.calls == [NIGHTLY]
    assert registry.cached_urls == (NIGHTLY,)


def test_clear_forces_refetch(fetcher) -> None:
    registry = OverlayRegistry(fetcher=fetcher)
    registry.resolve_overlay(NIGHTLY)

    registry.clear()
    registry.resolve_overlay(NIGHTLY)

    assert fetcher.calls == [NIGHTLY, NIGHTLY]


def test_concurrent_requests_fetch_once(make_overlay: Callable[..., bytes]) -> None:
    calls: list[str] = []
    calls_lock = threading.Lock()
    payload = make_overlay("slow")

    def slow_fetcher(url: str, timeout: float) -> bytes:
        with calls_lock:
            calls.append(url)
        time.sleep(0.05)
        return payload

    registry = OverlayRegistry(fetcher=slow_fetcher)
    results: list[object] = []
    results_lock = threading.Lock()

    def worker() -> None:
        source = registry.resolve_overlay(NIGHTLY)
        with results_lock:
            results.append(source)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [NIGHTLY]
    assert len(results) == 8
    assert all(result is results[0] for result in results)


def test_unreachable_overlay_raises_fetch_error_and_is_not_cached(fetcher) -> None:
    registry = OverlayRegistry(fetcher=fetcher)
    url = "https://unreachable.example.test/overlay.json"

    with pytest.raises(FetchError) as excinfo:
        registry.resolve_overlay(url)

    assert excinfo.value.url == url
    assert "unreachable" in str(excinfo.value)
    assert registry.cached_urls == ()

    with pytest.raises(FetchError):
        registry.resolve_overlay(url)
    assert fetcher.calls == [url, url]


@pytest.mark.parametrize(
    "content",
    [
        b"\xff\xfe not utf-8",
        b"{not json",
        b"[1, 2, 3]",
        b'{"schemaVersion": "1.0.0"}',
        b'{"schemaVersion": "2.0.0", "name": "future"}',
        b'{"schemaVersion": "1.0.0", "name": "x", "tools": {"compiler": {"version": "1.50.0"}}}',
        b'{"schemaVersion": "1.0.0", "name": "x", "tools": {"Bad Identity": {"package": "p"}}}',
    ],
)
def test_malformed_overlay_content_raises_fetch_error(content: bytes) -> None:
    registry = OverlayRegistry(fetcher=lambda url, timeout: content)

    with pytest.raises(FetchError, match="malformed overlay content"):
        registry.resolve_overlay(NIGHTLY)

    assert registry.cached_urls == ()


def test_empty_url_is_rejected(fetcher) -> None:
    with pytest.raises(FetchError):
        OverlayRegistry(fetcher=fetcher).resolve_overlay("")
    assert fetcher.calls == []


def test_fetcher_receives_timeout(make_overlay: Callable[..., bytes]) -> None:
    seen: list[float] = []

    def recording_fetcher(url: str, timeout: float) -> bytes:
        seen.append(timeout)
        return make_overlay("timed")

    OverlayRegistry(fetcher=recording_fetcher).resolve_overlay(NIGHTLY, timeout=2.5)

    assert seen == [2.5]


def test_fetch_url_reads_file_urls(tmp_path: Path, make_overlay: Callable[..., bytes]) -> None:
    overlay_path = tmp_path / "overlay.json"
    overlay_path.write_bytes(make_overlay("local", channels=["stable"]))

    registry = OverlayRegistry()
    overlay = registry.resolve_overlay(overlay_path.as_uri())

    assert overlay.name == "local"
    assert overlay.channels == ("stable",)


def test_fetch_url_reports_missing_file(tmp_path: Path) -> None:
    url = (tmp_path / "missing.json").as_uri()

    with pytest.raises(FetchError, match="unreachable"):
        fetch_url(url, 1.0)


def test_fetch_url_rejects_unsupported_scheme() -> None:
    with pytest.raises(FetchError, match="unsupported scheme 'ftp'"):
        fetch_url("ftp://mirror.example.test/overlay.json", 1.0)


def test_fetch_url_rejects_malformed_port() -> None:
    url = "http://example.invalid:abc/overlay.json"

    with pytest.raises(FetchError, match="bad response") as excinfo:
        fetch_url(url, 1.0)

    assert excinfo.value.url == url
    assert isinstance(excinfo.value.__cause__, http.client.InvalidURL)


def test_truncated_response_raises_fetch_error() -> None:
    def truncating_fetcher(url: str, timeout: float) -> bytes:
        raise http.client.IncompleteRead(b"{", 10)

    registry = OverlayRegistry(fetcher=truncating_fetcher)

    with pytest.raises(FetchError, match="unreachable"):
        registry.resolve_overlay(NIGHTLY)
    assert registry.cached_urls == ()


def test_clear_during_fetch_keeps_single_fetch(make_overlay: Callable[..., bytes]) -> None:
    calls: list[str] = []
    entered = threading.Event()
    release = threading.Event()
    payload = make_overlay("gated")

    def gated_fetcher(url: str, timeout: float) -> bytes:
        calls.append(url)
        entered.set()
        assert release.wait(5.0)
        return payload

    registry = OverlayRegistry(fetcher=gated_fetcher)
    results: list[object] = []
    results_lock = threading.Lock()

    def worker() -> None:
        source = registry.resolve_overlay(NIGHTLY)
        with results_lock:
            results.append(source)

    first = threading.Thread(target=worker)
    first.start()
    assert entered.wait(5.0)
    registry.clear()
    second = threading.Thread(target=worker)
    second.start()
    time.sleep(0.05)
    release.set()
    first.join()
    second.join()

    assert calls == [NIGHTLY]
    assert len(results) == 2
    assert results[0] is results[1]


def test_url_locks_are_released_after_fetch(fetcher) -> None:
    registry = OverlayRegistry(fetcher=fetcher)
    registry.resolve_overlay(NIGHTLY)
    with pytest.raises(FetchError):
        registry.resolve_overlay("https://unreachable.example.test/overlay.json")

    assert registry._url_slots == {}
