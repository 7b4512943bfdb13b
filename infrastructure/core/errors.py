"""Error taxonomy for the collector composition pass."""

from __future__ import annotations

from typing import Optional


class CompositionError(Exception):
    """Base class for every error raised while composing a deployment."""


class ConfigurationError(CompositionError, ValueError):
    """Required input is missing or malformed; the whole pass is aborted."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class DependencyOrderingError(CompositionError, RuntimeError):
    """A stage consumed a value before the stage producing it ran."""
