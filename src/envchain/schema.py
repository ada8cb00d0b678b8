# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Schema loading utilities for validating overlay and registry documents."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Final

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .errors import ConfigError
from .io import load_resource
from .types import JSONValue

OVERLAY_SCHEMA_RESOURCE: Final[str] = "overlay.schema.json"


@dataclass(frozen=True, slots=True)
class SchemaRepository:
    """Hold the compiled validator shared by overlay and base registry documents."""

    overlay_validator: Draft202012Validator

    @classmethod
    def load(cls) -> SchemaRepository:
        """Load and compile the bundled overlay schema.

        Returns:
            SchemaRepository: Repository bound to the overlay validator.
        """

        schema = load_resource(OVERLAY_SCHEMA_RESOURCE)
        Draft202012Validator.check_schema(schema)
        return cls(overlay_validator=Draft202012Validator(schema))

    def validate_overlay(self, document: Mapping[str, JSONValue], *, context: str) -> None:
        """Validate ``document`` against the overlay schema.

        Args:
            document: Parsed overlay or registry document.
            context: Location used in error messages.

        Raises:
            ConfigError: When the document fails schema validation.
        """

        try:
            self.overlay_validator.validate(document)
        except ValidationError as exc:
            location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
            raise ConfigError(f"{context}: {location}: {exc.message}") from exc


@lru_cache(maxsize=1)
def default_schemas() -> SchemaRepository:
    """Return the process-wide schema repository."""

    return SchemaRepository.load()


__all__ = ["OVERLAY_SCHEMA_RESOURCE", "SchemaRepository", "default_schemas"]
