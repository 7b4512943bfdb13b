"""Deployment variant: the tagged value every composition decision is keyed on."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from infrastructure.core.errors import ConfigurationError


class ComputeKind(str, Enum):
    LAMBDA = "lambda"
    FARGATE = "fargate"


class BuildSource(str, Enum):
    LOCAL = "local"
    PREBUILT = "prebuilt"


class RunMode(str, Enum):
    """Value of RUN_MODE handed to the collector process."""

    LAMBDA = "LAMBDA"
    CRON = "CRON"


def parse_enum(enum_cls: type, raw: object, *, key: str):
    """Parse a case-insensitive enum value or raise ConfigurationError."""
    text = str(raw or "").strip()
    for member in enum_cls:
        if member.value.lower() == text.lower():
            return member
    allowed = ", ".join(member.value for member in enum_cls)
    raise ConfigurationError(f"Unsupported {key} '{text}' (expected one of: {allowed})", key=key)


@dataclass(frozen=True)
class DeploymentVariant:
    """Immutable selection of compute kind, build source and feature flags."""

    compute_kind: ComputeKind
    build_source: BuildSource
    network_attached: bool = False
    custom_metrics_file: bool = False
    events_trigger: bool = False

    def __post_init__(self) -> None:
        if self.compute_kind is ComputeKind.FARGATE and not self.network_attached:
            raise ConfigurationError(
                "Fargate compute target requires network attachment (vpcId and subnetIds)",
                key="networkAttached",
            )

    @property
    def run_mode(self) -> RunMode:
        if self.compute_kind is ComputeKind.FARGATE:
            return RunMode.CRON
        return RunMode.LAMBDA

    @property
    def scheduled(self) -> bool:
        """Whether the primary entry point is driven by an external schedule."""
        return self.run_mode is RunMode.LAMBDA

    def describe(self) -> dict[str, object]:
        return {
            "compute_kind": self.compute_kind.value,
            "build_source": self.build_source.value,
            "run_mode": self.run_mode.value,
            "network_attached": self.network_attached,
            "custom_metrics_file": self.custom_metrics_file,
            "events_trigger": self.events_trigger,
        }
