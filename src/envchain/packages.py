# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Package universe assembled from the base registry and fetched overlays."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Final, cast

from .channels import normalize_channel
from .errors import ConfigError
from .io import load_resource
from .merge import merge_json_objects
from .models import ToolReference, ToolSource
from .overlay import OverlaySource
from .schema import default_schemas
from .types import JSONValue
from .utils import expect_mapping, expect_string, optional_bool, optional_string, string_array

LOGGER = logging.getLogger(__name__)

BASE_REGISTRY_RESOURCE: Final[str] = "base_registry.json"


@dataclass(frozen=True, slots=True)
class PackageEntry:
    """Channel-independent description of a tool available in the universe."""

    identity: str
    package: str
    channel_bound: bool = False
    version: str | None = None
    extensions: tuple[str, ...] = ()
    output: str | None = None
    description: str | None = None
    source: ToolSource = ToolSource.base()

    @classmethod
    def from_mapping(
        cls,
        identity: str,
        data: Mapping[str, JSONValue],
        *,
        source: ToolSource,
        context: str,
    ) -> PackageEntry:
        """Build an entry from a registry or overlay ``tools`` table."""

        return cls(
            identity=identity,
            package=expect_string(data.get("package"), key="package", context=context),
            channel_bound=optional_bool(data.get("channelBound"), key="channelBound", context=context, default=False),
            version=optional_string(data.get("version"), key="version", context=context),
            extensions=string_array(data.get("extensions"), key="extensions", context=context),
            output=optional_string(data.get("output"), key="output", context=context),
            description=optional_string(data.get("description"), key="description", context=context),
            source=source,
        )

    def reference(self, channel: str | None) -> ToolReference:
        """Return the concrete reference for this entry on ``channel``.

        Channel-bound entries are pinned to ``channel``; the others keep
        their own pinned version (or none).
        """

        version = channel if self.channel_bound and channel else self.version
        return ToolReference(
            identity=self.identity,
            package=self.package,
            version=version,
            extensions=self.extensions,
            output=self.output,
            source=self.source,
        )


class PackageSet(Mapping[str, ToolReference]):
    """Immutable mapping of tool identities to references bound to one channel.

    This is the package universe handed to extra-package hooks:

        lambda packages: [packages["coverage"], packages["lint"]]
    """

    __slots__ = ("_channel", "_entries", "_known_channels")

    def __init__(
        self,
        entries: Mapping[str, PackageEntry],
        *,
        channel: str | None = None,
        known_channels: frozenset[str] | None = None,
    ) -> None:
        self._entries: Mapping[str, PackageEntry] = MappingProxyType(dict(entries))
        self._channel = normalize_channel(channel) if channel is not None else None
        self._known_channels = known_channels

    @classmethod
    def build(
        cls,
        overlays: Sequence[OverlaySource] = (),
        *,
        channel: str | None = None,
        base: Mapping[str, JSONValue] | None = None,
    ) -> PackageSet:
        """Merge the base registry with ``overlays`` in order.

        Later documents shadow earlier ones per identity using the catalog
        merge rule: arrays concatenate without duplicates, scalars replace.

        Args:
            overlays: Fetched overlays applied after the base registry.
            channel: Channel that channel-bound entries are pinned to.
            base: Optional base registry document overriding the bundled one.

        Returns:
            PackageSet: The merged package universe.

        Raises:
            ConfigError: If a document contains malformed tool entries.
        """

        registry = base if base is not None else base_registry_document()
        merged_tools = expect_mapping(registry.get("tools", {}), key="tools", context="base")
        sources = {identity: ToolSource.base() for identity in merged_tools}
        declared: set[str] | None = None
        for overlay in overlays:
            overlay_tools = overlay.tools
            merged_tools = merge_json_objects(merged_tools, overlay_tools, context=overlay.url)
            for identity in overlay_tools:
                sources[identity] = ToolSource.overlay(overlay.url)
            if overlay.channels:
                declared = (declared or set()) | set(overlay.channels)
            LOGGER.debug("merged overlay %s (%d tool entries)", overlay.url, len(overlay_tools))

        entries: dict[str, PackageEntry] = {}
        for identity, raw in merged_tools.items():
            context = f"{sources[identity]}.tools.{identity}"
            entries[identity] = PackageEntry.from_mapping(
                identity,
                expect_mapping(raw, key=identity, context=context),
                source=sources[identity],
                context=context,
            )
        known = frozenset(declared) if declared is not None else None
        return cls(entries, channel=channel, known_channels=known)

    @property
    def channel(self) -> str | None:
        """Return the channel references are pinned to."""

        return self._channel

    @property
    def known_channels(self) -> frozenset[str] | None:
        """Return channels declared by overlays, or ``None`` when unrestricted."""

        return self._known_channels

    @property
    def entries(self) -> Mapping[str, PackageEntry]:
        """Return the channel-independent entries."""

        return self._entries

    def bind(self, channel: str) -> PackageSet:
        """Return the same universe pinned to ``channel``."""

        if channel == self._channel:
            return self
        return PackageSet(self._entries, channel=channel, known_channels=self._known_channels)

    def reference(self, identity: str) -> ToolReference:
        """Return the reference for ``identity`` or raise a configuration error.

        Raises:
            ConfigError: If ``identity`` is not part of the universe.
        """

        entry = self._entries.get(identity)
        if entry is None:
            raise ConfigError(f"unknown package '{identity}' (available: {', '.join(sorted(self._entries))})")
        return entry.reference(self._channel)

    def __getitem__(self, identity: str) -> ToolReference:
        entry = self._entries[identity]
        return entry.reference(self._channel)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PackageSet(channel={self._channel!r}, packages={sorted(self._entries)!r})"


@lru_cache(maxsize=1)
def base_registry_document() -> Mapping[str, JSONValue]:
    """Return the bundled base registry, validated against the overlay schema."""

    document = load_resource(BASE_REGISTRY_RESOURCE)
    default_schemas().validate_overlay(document, context=BASE_REGISTRY_RESOURCE)
    return cast(Mapping[str, JSONValue], document)


__all__ = ["BASE_REGISTRY_RESOURCE", "PackageEntry", "PackageSet", "base_registry_document"]
