"""Compute targets for the collector: Lambda functions or a long-running Fargate service."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from aws_cdk import (
    Duration,
    aws_ecr_assets as ecr_assets,
    aws_ecs as ecs,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
)
from aws_cdk.aws_lambda_go_alpha import BundlingOptions, GoFunction
from constructs import Construct

from infrastructure.config.settings import CollectorSettings, TargetArch
from infrastructure.core.errors import ConfigurationError
from infrastructure.core.network import NetworkBinding, function_network_options
from infrastructure.core.runtime_config import RuntimeConfig
from infrastructure.core.variant import BuildSource, ComputeKind, RunMode

COLLECTOR_NAME = "database-collector"
EVENTS_COLLECTOR_NAME = "events-collector"


@dataclass(frozen=True)
class ComputeSizing:
    memory_mib: int
    timeout_seconds: Optional[int] = None
    cpu: Optional[int] = None
    desired_count: int = 1


@dataclass(frozen=True)
class EntryPoint:
    """One executable entry of the collector and how it is built and sized."""

    name: str
    construct_id: str
    kind: ComputeKind
    source: str
    sizing: ComputeSizing
    artifact: Optional[str] = None
    artifact_key: str = "collectorArtifactPath"
    run_mode: Optional[RunMode] = None


@dataclass(frozen=True)
class ComputeTarget:
    entry_point: EntryPoint
    function: Optional[lambda_.IFunction] = None
    service: Optional[ecs.FargateService] = None

    @property
    def invocable(self) -> bool:
        """Whether triggers can invoke this target directly."""
        return self.function is not None


def collector_entry_point(settings: CollectorSettings) -> EntryPoint:
    """Primary collector entry; sizing defaults differ per compute kind."""
    variant = settings.variant
    if variant.compute_kind is ComputeKind.FARGATE:
        return EntryPoint(
            name=COLLECTOR_NAME,
            construct_id="CollectorService",
            kind=ComputeKind.FARGATE,
            source=settings.collector_source_path,
            artifact=settings.collector_image_uri,
            sizing=ComputeSizing(
                memory_mib=settings.fargate_memory,
                cpu=settings.fargate_cpu,
                desired_count=settings.fargate_desired_count,
            ),
        )
    return EntryPoint(
        name=COLLECTOR_NAME,
        construct_id="CollectorFunction",
        kind=ComputeKind.LAMBDA,
        source=settings.collector_entry,
        artifact=settings.collector_artifact_path,
        sizing=ComputeSizing(memory_mib=settings.collector_memory, timeout_seconds=settings.collector_timeout),
    )


def events_entry_point(settings: CollectorSettings) -> EntryPoint:
    return EntryPoint(
        name=EVENTS_COLLECTOR_NAME,
        construct_id="EventsCollectorFunction",
        kind=ComputeKind.LAMBDA,
        source=settings.events_collector_entry,
        artifact=settings.events_collector_artifact_path,
        artifact_key="eventsCollectorArtifactPath",
        run_mode=RunMode.LAMBDA,
        sizing=ComputeSizing(
            memory_mib=settings.events_collector_memory,
            timeout_seconds=settings.events_collector_timeout,
        ),
    )


def log_retention(days: int) -> logs.RetentionDays:
    """Map integer days from config to CloudWatch Logs retention enum."""
    retention_map = {
        1: logs.RetentionDays.ONE_DAY,
        3: logs.RetentionDays.THREE_DAYS,
        5: logs.RetentionDays.FIVE_DAYS,
        7: logs.RetentionDays.ONE_WEEK,
        14: logs.RetentionDays.TWO_WEEKS,
        30: logs.RetentionDays.ONE_MONTH,
        90: logs.RetentionDays.THREE_MONTHS,
    }
    return retention_map.get(days, logs.RetentionDays.TWO_WEEKS)


class ComputeTargetFactory:
    """Create compute targets sharing one role, one runtime config and one placement."""

    def __init__(
        self,
        scope: Construct,
        settings: CollectorSettings,
        *,
        role: iam.IRole,
        runtime_config: RuntimeConfig,
        network: Optional[NetworkBinding],
    ) -> None:
        self._scope = scope
        self._settings = settings
        self._role = role
        self._runtime_config = runtime_config
        self._network = network

    def create(self, entry_point: EntryPoint) -> ComputeTarget:
        if entry_point.kind is ComputeKind.FARGATE:
            return ComputeTarget(entry_point=entry_point, service=self._service(entry_point))
        return ComputeTarget(entry_point=entry_point, function=self._function(entry_point))

    def _environment(self, entry_point: EntryPoint) -> dict[str, str]:
        runtime = self._runtime_config
        if entry_point.run_mode is not None:
            runtime = runtime.with_literal("RUN_MODE", entry_point.run_mode.value)
            if entry_point.run_mode is RunMode.LAMBDA:
                runtime = runtime.without("CRON_SCHEDULE")
        return runtime.to_environment()

    def _architecture(self) -> lambda_.Architecture:
        if self._settings.target_arch is TargetArch.X86_64:
            return lambda_.Architecture.X86_64
        return lambda_.Architecture.ARM_64

    def _function(self, entry_point: EntryPoint) -> lambda_.IFunction:
        settings = self._settings
        sizing = entry_point.sizing
        common = dict(
            function_name=f"{settings.env_name}-{entry_point.name}",
            runtime=lambda_.Runtime.PROVIDED_AL2023,
            architecture=self._architecture(),
            memory_size=sizing.memory_mib,
            timeout=Duration.seconds(sizing.timeout_seconds or 300),
            role=self._role,
            environment=self._environment(entry_point),
            log_retention=log_retention(settings.log_retention_days),
            **function_network_options(self._network),
        )

        if settings.variant.build_source is BuildSource.PREBUILT:
            artifact = _existing_path(entry_point.artifact, key=entry_point.artifact_key)
            return lambda_.Function(
                self._scope,
                entry_point.construct_id,
                code=lambda_.Code.from_asset(artifact),
                handler="bootstrap",
                **common,
            )

        return GoFunction(
            self._scope,
            entry_point.construct_id,
            entry=entry_point.source,
            bundling=BundlingOptions(
                cgo_enabled=False,
                environment={"GOOS": settings.target_os},
            ),
            **common,
        )

    def _container_image(self, entry_point: EntryPoint) -> ecs.ContainerImage:
        settings = self._settings
        if settings.variant.build_source is BuildSource.PREBUILT:
            if not entry_point.artifact:
                raise ConfigurationError("Pre-built Fargate deployment requires collectorImageUri", key="collectorImageUri")
            return ecs.ContainerImage.from_registry(entry_point.artifact)

        directory = _existing_path(entry_point.source, key="collector_source_path")
        dockerfile = Path(directory) / settings.collector_dockerfile
        if not dockerfile.is_file():
            raise ConfigurationError(f"Dockerfile not found: {dockerfile}", key="collector_dockerfile")
        platform = (
            ecr_assets.Platform.LINUX_AMD64
            if settings.target_arch is TargetArch.X86_64
            else ecr_assets.Platform.LINUX_ARM64
        )
        return ecs.ContainerImage.from_asset(directory, file=settings.collector_dockerfile, platform=platform)

    def _service(self, entry_point: EntryPoint) -> ecs.FargateService:
        settings = self._settings
        network = self._network
        if network is None:
            raise ConfigurationError("Fargate compute target requires network placement", key="subnetIds")

        image = self._container_image(entry_point)
        sizing = entry_point.sizing
        cluster = ecs.Cluster(
            self._scope,
            "CollectorCluster",
            cluster_name=f"{settings.env_name}-{entry_point.name}",
            vpc=network.vpc,
        )
        task_definition = ecs.FargateTaskDefinition(
            self._scope,
            "CollectorTaskDefinition",
            family=f"{settings.env_name}-{entry_point.name}",
            cpu=sizing.cpu or 1024,
            memory_limit_mib=sizing.memory_mib,
            task_role=self._role,
            runtime_platform=ecs.RuntimePlatform(
                cpu_architecture=(
                    ecs.CpuArchitecture.X86_64
                    if settings.target_arch is TargetArch.X86_64
                    else ecs.CpuArchitecture.ARM64
                ),
                operating_system_family=ecs.OperatingSystemFamily.LINUX,
            ),
        )
        task_definition.add_container(
            "Collector",
            image=image,
            environment=self._environment(entry_point),
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=entry_point.name,
                log_retention=log_retention(settings.log_retention_days),
            ),
        )
        return ecs.FargateService(
            self._scope,
            entry_point.construct_id,
            service_name=f"{settings.env_name}-{entry_point.name}",
            cluster=cluster,
            task_definition=task_definition,
            desired_count=sizing.desired_count,
            vpc_subnets=network.subnet_selection(),
            security_groups=list(network.security_groups) or None,
            assign_public_ip=False,
        )


def _existing_path(path: Optional[str], *, key: str) -> str:
    if not path:
        raise ConfigurationError(f"{key} must be provided", key=key)
    if not Path(path).exists():
        raise ConfigurationError(f"{key} does not exist: {path}", key=key)
    return path
