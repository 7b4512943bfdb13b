"""Linear stage tracking for a single composition pass."""

from __future__ import annotations

from enum import IntEnum

from infrastructure.core.errors import DependencyOrderingError


class CompositionStage(IntEnum):
    UNCONFIGURED = 0
    CONFIG_RESOLVED = 1
    ACCESS_SCOPED = 2
    NETWORK_RESOLVED = 3
    COMPUTE_TARGET_CREATED = 4
    TRIGGERS_BOUND = 5


class CompositionPass:
    """Track the current stage; transitions only move forward one step at a time."""

    def __init__(self) -> None:
        self._stage = CompositionStage.UNCONFIGURED

    @property
    def stage(self) -> CompositionStage:
        return self._stage

    def require(self, stage: CompositionStage, *, consumer: str) -> None:
        """Fail when ``consumer`` runs before ``stage`` has been reached."""
        if self._stage < stage:
            raise DependencyOrderingError(
                f"{consumer} requires stage {stage.name} but composition is at {self._stage.name}"
            )

    def advance(self, stage: CompositionStage) -> CompositionStage:
        if stage != self._stage + 1:
            raise DependencyOrderingError(f"Cannot move from {self._stage.name} to {stage.name}")
        self._stage = stage
        return stage
