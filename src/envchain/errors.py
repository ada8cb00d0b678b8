# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Custom exceptions raised while resolving toolchain environments."""

from __future__ import annotations


class EnvchainError(RuntimeError):
    """Base class for all environment resolution failures."""


class FetchError(EnvchainError):
    """Raised when an overlay source is unreachable or its content is malformed."""

    def __init__(self, url: str, message: str) -> None:
        """Create the error for ``url`` with a human-readable ``message``.

        Args:
            url: Overlay location that failed to load.
            message: Description of the failure.
        """

        super().__init__(f"{url}: {message}")
        self.url = url


class ConfigError(EnvchainError):
    """Raised when configuration input is invalid (unknown channel, malformed names)."""


class ResolutionError(EnvchainError):
    """Raised when a resolution run fails at any stage.

    The underlying :class:`FetchError` or :class:`ConfigError` is available via
    ``__cause__`` and :attr:`cause`; :attr:`state` names the stage that was
    active when the failure occurred.
    """

    def __init__(self, message: str, *, state: str, cause: EnvchainError) -> None:
        """Initialise the error with the failing ``state`` and wrapped ``cause``.

        Args:
            message: Human-readable error message.
            state: Resolution state active when the failure occurred.
            cause: Underlying fetch or configuration error.
        """

        super().__init__(message)
        self.state = state
        self.cause = cause


__all__ = ("ConfigError", "EnvchainError", "FetchError", "ResolutionError")
