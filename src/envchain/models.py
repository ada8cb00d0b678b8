# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Immutable value models describing toolchains and tool references."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Final, Literal, TypeAlias

from .channels import normalize_channel
from .errors import ConfigError
from .types import BASE_SOURCE_LOCATION, DOCS_EXTENSION, JSONValue
from .utils import expect_string, optional_string, string_array

NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

SourceKind: TypeAlias = Literal["base", "overlay"]
AttrsUpdate: TypeAlias = Mapping[str, object] | Callable[["ToolReference"], Mapping[str, object]]

_OVERRIDABLE_ATTRS: Final[frozenset[str]] = frozenset({"package", "version", "extensions", "output"})


def validate_name(value: str, *, kind: str) -> str:
    """Return ``value`` when it is a well-formed identity or extension name.

    Raises:
        ConfigError: If ``value`` is malformed.
    """

    if not isinstance(value, str) or NAME_PATTERN.match(value) is None:
        raise ConfigError(f"malformed {kind} name {value!r}")
    return value


def dedupe_names(values: Iterable[str], *, kind: str) -> tuple[str, ...]:
    """Validate ``values`` and drop duplicates, keeping first-seen order."""

    return tuple(dict.fromkeys(validate_name(value, kind=kind) for value in values))


@dataclass(frozen=True, slots=True)
class ToolchainSpec:
    """Requested language toolchain: channel, documentation flag and extensions."""

    version: str
    include_docs: bool = True
    extensions: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        """Validate the channel and normalise extension names."""

        object.__setattr__(self, "version", normalize_channel(self.version, context="toolchain"))
        object.__setattr__(self, "extensions", frozenset(dedupe_names(self.extensions, kind="extension")))

    @property
    def sorted_extensions(self) -> tuple[str, ...]:
        """Return the extensions in deterministic order."""

        return tuple(sorted(self.extensions))


@dataclass(frozen=True, slots=True)
class ToolSource:
    """Origin of a tool reference: the base registry or an overlay url."""

    kind: SourceKind
    location: str

    @classmethod
    def base(cls) -> ToolSource:
        """Return the source describing the bundled base registry."""

        return cls(kind="base", location=BASE_SOURCE_LOCATION)

    @classmethod
    def overlay(cls, url: str) -> ToolSource:
        """Return the source describing the overlay fetched from ``url``."""

        return cls(kind="overlay", location=url)

    def __str__(self) -> str:
        return self.location if self.kind == "base" else f"overlay:{self.location}"


@dataclass(frozen=True, slots=True)
class ToolReference:
    """A concrete tool entry within an environment descriptor.

    ``identity`` is the logical role of the tool (``compiler``, ``lint``...).
    Two references with the same identity occupy the same slot in a
    descriptor regardless of their package, version or extensions.
    """

    identity: str
    package: str
    version: str | None = None
    extensions: tuple[str, ...] = ()
    output: str | None = None
    source: ToolSource = field(default_factory=ToolSource.base)

    def __post_init__(self) -> None:
        """Validate the identity and deduplicate extensions."""

        validate_name(self.identity, kind="tool identity")
        if not self.package:
            raise ConfigError(f"tool '{self.identity}' requires a package name")
        object.__setattr__(self, "extensions", dedupe_names(self.extensions, kind="extension"))

    @property
    def label(self) -> str:
        """Return ``identity@version`` (or the bare identity when unversioned)."""

        return f"{self.identity}@{self.version}" if self.version else self.identity

    @property
    def carries_documentation(self) -> bool:
        """Return ``True`` when the reference bundles documentation components."""

        return DOCS_EXTENSION in self.extensions

    def without_extensions(self, *names: str) -> ToolReference:
        """Return a copy with ``names`` removed from the extension list."""

        if not any(name in self.extensions for name in names):
            return self
        return replace(self, extensions=tuple(ext for ext in self.extensions if ext not in names))

    def override_attrs(self, attrs: AttrsUpdate) -> ToolReference:
        """Return a copy with fields updated from ``attrs``.

        A mapping extends ``extensions`` (duplicates dropped) and replaces
        the other fields. A callable receives the current reference and its
        result replaces fields verbatim, so it controls the extension list.

        Raises:
            ConfigError: If ``attrs`` names a field that cannot be overridden.
        """

        if callable(attrs):
            updates = dict(attrs(self))
            merge_extensions = False
        else:
            updates = dict(attrs)
            merge_extensions = True
        unknown = sorted(set(updates) - _OVERRIDABLE_ATTRS)
        if unknown:
            raise ConfigError(f"tool '{self.identity}': cannot override attribute(s) {', '.join(unknown)}")
        changes: dict[str, object] = {}
        for key, value in updates.items():
            if key == "extensions":
                incoming = string_array(value, key="extensions", context=self.identity)  # type: ignore[arg-type]
                changes[key] = self.extensions + incoming if merge_extensions else incoming
            else:
                changes[key] = value
        return replace(self, **changes)  # type: ignore[arg-type]

    def to_mapping(self) -> dict[str, JSONValue]:
        """Return a JSON-compatible mapping describing the reference."""

        return {
            "identity": self.identity,
            "package": self.package,
            "version": self.version,
            "extensions": list(self.extensions),
            "output": self.output,
            "source": str(self.source),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, JSONValue], *, context: str) -> ToolReference:
        """Build a reference from a configuration table.

        Raises:
            ConfigError: If required keys are missing or malformed.
        """

        return cls(
            identity=expect_string(data.get("identity"), key="identity", context=context),
            package=expect_string(data.get("package"), key="package", context=context),
            version=optional_string(data.get("version"), key="version", context=context),
            extensions=string_array(data.get("extensions"), key="extensions", context=context),
            output=optional_string(data.get("output"), key="output", context=context),
        )

    def __str__(self) -> str:
        return self.label


__all__ = [
    "AttrsUpdate",
    "NAME_PATTERN",
    "SourceKind",
    "ToolReference",
    "ToolSource",
    "ToolchainSpec",
    "dedupe_names",
    "validate_name",
]
