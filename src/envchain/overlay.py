# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Overlay registry: fetch, validate and cache overlay documents by url."""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from threading import Lock
from typing import Final, TypeAlias, cast
from urllib.parse import urlparse

from .checksum import content_digest
from .errors import ConfigError, FetchError
from .io import parse_document
from .schema import SchemaRepository, default_schemas
from .types import DEFAULT_FETCH_TIMEOUT, JSONValue
from .utils import freeze_json_mapping, string_array

LOGGER = logging.getLogger(__name__)

SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"https", "http", "file"})
USER_AGENT: Final[str] = "envchain-overlay/1.0"

Fetcher: TypeAlias = Callable[[str, float], bytes]


@dataclass(slots=True)
class _UrlSlot:
    """Per-url fetch lock and the number of callers currently using it."""

    lock: Lock = field(default_factory=Lock)
    users: int = 0


def fetch_url(url: str, timeout: float) -> bytes:
    """Download ``url`` and return its raw bytes.

    Args:
        url: Overlay location using one of :data:`SUPPORTED_SCHEMES`.
        timeout: Seconds to wait for the remote endpoint.

    Returns:
        bytes: Response body.

    Raises:
        FetchError: If the scheme is unsupported or the source is unreachable.
    """

    parsed = urlparse(url)
    if parsed.scheme.lower() not in SUPPORTED_SCHEMES:
        raise FetchError(url, f"unsupported scheme '{parsed.scheme or '<none>'}'")
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return cast(bytes, response.read())
    except urllib.error.URLError as exc:
        raise FetchError(url, f"unreachable ({exc.reason})") from exc
    except http.client.HTTPException as exc:
        raise FetchError(url, f"bad response ({type(exc).__name__}: {exc})") from exc
    except (OSError, ValueError) as exc:
        raise FetchError(url, f"unreachable ({exc})") from exc


@dataclass(frozen=True, slots=True)
class OverlaySource:
    """Overlay content fetched from ``url``; immutable once created."""

    url: str
    content: bytes = field(repr=False)
    document: Mapping[str, JSONValue] = field(repr=False)
    digest: str

    @property
    def name(self) -> str:
        """Return the overlay's declared name."""

        return cast(str, self.document["name"])

    @property
    def channels(self) -> tuple[str, ...]:
        """Return the channels declared by the overlay (possibly empty)."""

        return string_array(self.document.get("channels"), key="channels", context=self.url)

    @property
    def tools(self) -> Mapping[str, JSONValue]:
        """Return the overlay's tool entries keyed by identity."""

        return cast(Mapping[str, JSONValue], self.document.get("tools", {}))


class OverlayRegistry:
    """Fetch and cache overlay sources keyed by url.

    Each url is fetched at most once even when several threads request it
    concurrently. Failed fetches are not cached so callers may retry by
    resolving again.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher | None = None,
        schemas: SchemaRepository | None = None,
    ) -> None:
        self._fetcher: Fetcher = fetcher or fetch_url
        self._schemas = schemas
        self._cache: dict[str, OverlaySource] = {}
        self._url_slots: dict[str, _UrlSlot] = {}
        self._lock = Lock()

    @property
    def cached_urls(self) -> tuple[str, ...]:
        """Return the urls currently held in the cache."""

        with self._lock:
            return tuple(self._cache)

    def resolve_overlay(self, url: str, *, timeout: float = DEFAULT_FETCH_TIMEOUT) -> OverlaySource:
        """Return the overlay for ``url``, fetching it on first use.

        Args:
            url: Overlay location.
            timeout: Seconds allowed for the fetch; the only blocking step.

        Returns:
            OverlaySource: Cached or freshly fetched overlay.

        Raises:
            FetchError: If the source is unreachable or its content is malformed.
        """

        if not url:
            raise FetchError("<empty>", "overlay url must not be empty")
        with self._lock:
            cached = self._cache.get(url)
            if cached is not None:
                LOGGER.debug("overlay cache hit for %s", url)
                return cached
            slot = self._url_slots.setdefault(url, _UrlSlot())
            slot.users += 1
        try:
            with slot.lock:
                with self._lock:
                    cached = self._cache.get(url)
                if cached is not None:
                    return cached
                source = self._load(url, timeout)
                with self._lock:
                    self._cache[url] = source
                return source
        finally:
            self._release(url, slot)

    def clear(self) -> None:
        """Drop every cached overlay.

        Fetches already in flight keep their url lock, so a caller arriving
        meanwhile waits for that fetch instead of starting a second one.
        """

        with self._lock:
            self._cache.clear()

    def _release(self, url: str, slot: _UrlSlot) -> None:
        with self._lock:
            slot.users -= 1
            if slot.users == 0 and self._url_slots.get(url) is slot:
                del self._url_slots[url]

    def _load(self, url: str, timeout: float) -> OverlaySource:
        LOGGER.info("fetching overlay %s (timeout %.1fs)", url, timeout)
        try:
            content = self._fetcher(url, timeout)
        except (OSError, http.client.HTTPException) as exc:
            raise FetchError(url, f"unreachable ({exc})") from exc
        try:
            document = parse_document(content, context=url)
            schemas = self._schemas or default_schemas()
            schemas.validate_overlay(document, context=url)
            frozen = freeze_json_mapping(document, context=url)
        except ConfigError as exc:
            raise FetchError(url, f"malformed overlay content: {exc}") from exc
        digest = content_digest(content)
        LOGGER.debug("overlay %s fetched (%d bytes, sha256 %s)", url, len(content), digest[:12])
        return OverlaySource(url=url, content=content, document=frozen, digest=digest)


__all__ = ["Fetcher", "OverlayRegistry", "OverlaySource", "SUPPORTED_SCHEMES", "fetch_url"]
