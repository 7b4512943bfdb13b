"""Collector settings resolved once at the start of a composition pass.

Every input the composer consumes is read here, in one place, with a fixed
precedence: CDK context (camelCase keys) first, then the environment config
(snake_case keys), then the documented default. Nothing downstream reads
context or process environment variables directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from infrastructure.config.types import EnvironmentConfig
from infrastructure.core.errors import ConfigurationError
from infrastructure.core.iam import utils as iam_utils
from infrastructure.core.variant import BuildSource, ComputeKind, DeploymentVariant, RunMode, parse_enum

ContextLookup = Callable[[str], Any]

DEFAULT_SSM_PARAMETER_PATH = "/database-collector/custom-metrics"
DEFAULT_SECRET_OPT_IN_TAG = "database-collector:enabled"

_TRUE_VALUES = {"true", "1", "yes", "y", "on"}
_FALSE_VALUES = {"false", "0", "no", "n", "off", ""}


class ExporterType(str, Enum):
    PROMETHEUS = "prometheus"
    CLOUDWATCH = "cloudwatch"


class TargetArch(str, Enum):
    ARM64 = "arm64"
    X86_64 = "x86_64"


@dataclass(frozen=True)
class CollectorSettings:
    """Explicit configuration record for one collector deployment."""

    env_name: str
    variant: DeploymentVariant
    exporter_type: ExporterType = ExporterType.PROMETHEUS
    prometheus_url: str = ""
    log_level: str = "info"
    secret_opt_in_tag: str = DEFAULT_SECRET_OPT_IN_TAG

    vpc_id: Optional[str] = None
    subnet_ids: Optional[Tuple[str, ...]] = None
    security_group_ids: Optional[Tuple[str, ...]] = None

    custom_metrics_file: Optional[str] = None
    ssm_parameter_path: str = DEFAULT_SSM_PARAMETER_PATH

    target_os: str = "linux"
    target_arch: TargetArch = TargetArch.ARM64

    collector_source_path: str = "collector"
    collector_entry: str = "collector/cmd/collector"
    collector_dockerfile: str = "build/Dockerfile"
    collector_image_uri: Optional[str] = None
    collector_artifact_path: Optional[str] = None
    collector_memory: int = 1024
    collector_timeout: int = 300

    events_collector_entry: str = "collector/cmd/events-collector"
    events_collector_artifact_path: Optional[str] = None
    events_collector_memory: int = 1024
    events_collector_timeout: int = 300
    events_sources: Tuple[str, ...] = ("aws.rds",)

    schedule_interval_minutes: int = 5

    fargate_cpu: int = 1024
    fargate_memory: int = 2048
    fargate_desired_count: int = 1

    log_retention_days: int = 14
    tags: Dict[str, str] = field(default_factory=dict)


def as_bool(raw: Any, *, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Expected a boolean for {key}, got '{raw}'", key=key)


def as_int(raw: Any, *, key: str) -> int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"Expected an integer for {key}, got '{raw}'", key=key)
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Expected an integer for {key}, got '{raw}'", key=key) from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value}", key=key)
    return value


def as_identifier_list(raw: Any, *, key: str) -> Optional[Tuple[str, ...]]:
    """Split a comma-separated string (or sequence) into identifiers; ``None`` when absent.

    A blank value yields an empty tuple. A blank entry next to other entries is rejected.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip():
            return ()
        items: Sequence[Any] = raw.split(",")
    else:
        items = list(raw)
    stripped = [str(item if item is not None else "").strip() for item in items]
    if stripped and not all(stripped):
        raise ConfigurationError(f"{key} contains an empty entry: '{raw}'", key=key)
    return tuple(iam_utils.dedupe(stripped))


def _optional_text(raw: Any) -> Optional[str]:
    text = str(raw or "").strip()
    return text or None


class _Source:
    """Read values by context key first, then environment config key."""

    def __init__(self, config: Mapping[str, Any], context_lookup: ContextLookup) -> None:
        self._config = config
        self._context = context_lookup

    def get(self, config_key: str, context_key: Optional[str] = None, default: Any = None) -> Any:
        if context_key:
            value = self._context(context_key)
            if value is not None:
                return value
        value = self._config.get(config_key)
        return default if value is None else value


def _resolve_variant(source: _Source) -> DeploymentVariant:
    compute_kind = parse_enum(ComputeKind, source.get("compute_target", "computeTarget", "lambda"), key="computeTarget")
    build_source = parse_enum(BuildSource, source.get("build_source", "buildSource", "local"), key="buildSource")

    vpc_id = _optional_text(source.get("vpc_id", "vpcId"))
    subnet_ids = as_identifier_list(source.get("subnet_ids", "subnetIds"), key="subnetIds")
    security_group_ids = as_identifier_list(source.get("security_group_ids", "securityGroupIds"), key="securityGroupIds")
    identifiers_given = bool(vpc_id) or subnet_ids is not None or security_group_ids is not None

    flag_raw = source.get("network_attached", "networkAttached")
    if flag_raw is None:
        network_attached = identifiers_given or compute_kind is ComputeKind.FARGATE
    else:
        network_attached = as_bool(flag_raw, key="networkAttached")
        if not network_attached and identifiers_given:
            raise ConfigurationError(
                "networkAttached=false contradicts the supplied vpcId/subnetIds/securityGroupIds",
                key="networkAttached",
            )

    custom_metrics_file = _optional_text(source.get("custom_metrics_file", "customMetricsFile"))
    events_trigger = as_bool(
        source.get("enable_events_collector", "enableEventsCollector", False), key="enableEventsCollector"
    )

    variant = DeploymentVariant(
        compute_kind=compute_kind,
        build_source=build_source,
        network_attached=network_attached,
        custom_metrics_file=custom_metrics_file is not None,
        events_trigger=events_trigger,
    )

    run_mode_raw = source.get("run_mode", "runMode")
    if run_mode_raw is not None:
        requested = parse_enum(RunMode, run_mode_raw, key="runMode")
        if requested is not variant.run_mode:
            raise ConfigurationError(
                f"runMode {requested.value} is not supported by compute target {compute_kind.value}"
                f" (expected {variant.run_mode.value})",
                key="runMode",
            )
    return variant


def _require_prebuilt_artifacts(settings: CollectorSettings) -> None:
    variant = settings.variant
    if variant.build_source is not BuildSource.PREBUILT:
        return
    if variant.compute_kind is ComputeKind.FARGATE and not settings.collector_image_uri:
        raise ConfigurationError("Pre-built Fargate deployment requires collectorImageUri", key="collectorImageUri")
    if variant.compute_kind is ComputeKind.LAMBDA and not settings.collector_artifact_path:
        raise ConfigurationError(
            "Pre-built Lambda deployment requires collectorArtifactPath", key="collectorArtifactPath"
        )
    if variant.events_trigger and not settings.events_collector_artifact_path:
        raise ConfigurationError(
            "Pre-built events collector requires eventsCollectorArtifactPath",
            key="eventsCollectorArtifactPath",
        )


def resolve_collector_settings(
    env_name: str,
    config: EnvironmentConfig,
    context_lookup: Optional[ContextLookup] = None,
) -> CollectorSettings:
    """Resolve the settings record for ``env_name`` from context and environment config."""
    source = _Source(config, context_lookup or (lambda _key: None))
    variant = _resolve_variant(source)

    target_os = str(source.get("target_os", None, "linux")).strip().lower()
    if target_os != "linux":
        raise ConfigurationError(f"Unsupported target_os '{target_os}' (expected: linux)", key="target_os")

    events_sources = tuple(iam_utils.config_string_list(config, "events_sources", default=("aws.rds",)))
    if variant.events_trigger and not events_sources:
        raise ConfigurationError("events_sources must not be empty when the events collector is enabled")

    settings = CollectorSettings(
        env_name=env_name,
        variant=variant,
        exporter_type=parse_enum(
            ExporterType, source.get("exporter_type", "exporterType", "prometheus"), key="exporterType"
        ),
        prometheus_url=str(source.get("prometheus_url", "prometheusUrl", "") or "").strip(),
        log_level=str(source.get("log_level", "logLevel", "info") or "info").strip().lower(),
        secret_opt_in_tag=str(source.get("secret_opt_in_tag", None, DEFAULT_SECRET_OPT_IN_TAG)).strip(),
        vpc_id=_optional_text(source.get("vpc_id", "vpcId")),
        subnet_ids=as_identifier_list(source.get("subnet_ids", "subnetIds"), key="subnetIds"),
        security_group_ids=as_identifier_list(
            source.get("security_group_ids", "securityGroupIds"), key="securityGroupIds"
        ),
        custom_metrics_file=_optional_text(source.get("custom_metrics_file", "customMetricsFile")),
        ssm_parameter_path=str(
            source.get("ssm_parameter_path", "ssmParameterPath", DEFAULT_SSM_PARAMETER_PATH) or ""
        ).strip()
        or DEFAULT_SSM_PARAMETER_PATH,
        target_os=target_os,
        target_arch=parse_enum(TargetArch, source.get("target_arch", "targetArch", "arm64"), key="targetArch"),
        collector_source_path=str(source.get("collector_source_path", None, "collector")),
        collector_entry=str(source.get("collector_entry", None, "collector/cmd/collector")),
        collector_dockerfile=str(source.get("collector_dockerfile", None, "build/Dockerfile")),
        collector_image_uri=_optional_text(source.get("collector_image_uri", "collectorImageUri")),
        collector_artifact_path=_optional_text(source.get("collector_artifact_path", "collectorArtifactPath")),
        collector_memory=as_int(source.get("collector_memory", None, 1024), key="collector_memory"),
        collector_timeout=as_int(source.get("collector_timeout", None, 300), key="collector_timeout"),
        events_collector_entry=str(source.get("events_collector_entry", None, "collector/cmd/events-collector")),
        events_collector_artifact_path=_optional_text(
            source.get("events_collector_artifact_path", "eventsCollectorArtifactPath")
        ),
        events_collector_memory=as_int(source.get("events_collector_memory", None, 1024), key="events_collector_memory"),
        events_collector_timeout=as_int(
            source.get("events_collector_timeout", None, 300), key="events_collector_timeout"
        ),
        events_sources=events_sources,
        schedule_interval_minutes=as_int(
            source.get("schedule_interval_minutes", None, 5), key="schedule_interval_minutes"
        ),
        fargate_cpu=as_int(source.get("fargate_cpu", None, 1024), key="fargate_cpu"),
        fargate_memory=as_int(source.get("fargate_memory", None, 2048), key="fargate_memory"),
        fargate_desired_count=as_int(source.get("fargate_desired_count", None, 1), key="fargate_desired_count"),
        log_retention_days=as_int(source.get("log_retention_days", None, 14), key="log_retention_days"),
        tags={str(k): str(v) for k, v in dict(config.get("tags", {}) or {}).items()},
    )
    _require_prebuilt_artifacts(settings)
    return settings
