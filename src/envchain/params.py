# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parameter set model describing one resolution request."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import ToolchainSpec
from .overrides import coerce_overrides
from .presets import Preset
from .types import DEFAULT_CHANNEL, DEFAULT_ENVIRONMENT_NAME, DEFAULT_FETCH_TIMEOUT


class ParameterSet(BaseModel):
    """Externally supplied configuration for a resolution run.

    ``include_docs`` and ``name`` default to ``None`` so that a preset may
    supply them; explicit values always win over the preset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    channel: str = DEFAULT_CHANNEL
    overlays: tuple[str, ...] = ()
    include_docs: bool | None = None
    extensions: tuple[str, ...] = ()
    name: str | None = None
    preset: str | None = None
    extra_packages: tuple[str, ...] = ()
    overrides: tuple[Any, ...] = ()
    extra_hook: Any = Field(default=None, exclude=True)
    fetch_timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)

    @field_validator("channel")
    @classmethod
    def _strip_channel(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("channel must be a non-empty string")
        return stripped

    @field_validator("overlays", "extensions", "extra_packages", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("overrides", mode="before")
    @classmethod
    def _coerce_overrides(cls, value: Any) -> tuple[Any, ...]:
        if value is None:
            return ()
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            raise ValueError("overrides must be a sequence of override steps or tables")
        try:
            return coerce_overrides(value)
        except ConfigError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("extra_hook")
    @classmethod
    def _check_hook(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ValueError("extra_hook must be callable")
        return value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, context: str = "parameters") -> ParameterSet:
        """Validate ``data`` and return a parameter set.

        Raises:
            ConfigError: If ``data`` does not describe a valid parameter set.
        """

        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ConfigError(f"{context}: {details}") from exc

    def environment_name(self, preset: Preset | None = None) -> str:
        """Return the descriptor name, falling back to the preset then the default."""

        if self.name:
            return self.name
        return preset.environment_name if preset is not None else DEFAULT_ENVIRONMENT_NAME

    def toolchain_spec(self, preset: Preset | None = None) -> ToolchainSpec:
        """Return the toolchain requested by these parameters.

        Raises:
            ConfigError: If the channel or an extension name is malformed.
        """

        include_docs = self.include_docs
        if include_docs is None:
            include_docs = preset.include_docs if preset is not None else True
        return ToolchainSpec(
            version=self.channel,
            include_docs=include_docs,
            extensions=frozenset(self.extensions),
        )

    def describe(self) -> dict[str, Any]:
        """Return a JSON-compatible summary of the parameters."""

        payload = self.model_dump(exclude={"overrides"})
        payload["overlays"] = list(self.overlays)
        payload["extensions"] = list(self.extensions)
        payload["extra_packages"] = list(self.extra_packages)
        payload["overrides"] = [step.kind for step in self.overrides]
        payload["extra_hook"] = getattr(self.extra_hook, "__qualname__", None) if self.extra_hook else None
        return payload


__all__ = ["ParameterSet"]
