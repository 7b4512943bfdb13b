"""Config resolution: custom-metrics parameter persistence and runtime environment shaping."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple, Union

from aws_cdk import aws_ssm as ssm
from constructs import Construct

from infrastructure.core.errors import ConfigurationError, DependencyOrderingError
from infrastructure.core.variant import RunMode

if TYPE_CHECKING:
    from infrastructure.config.settings import CollectorSettings

MAX_STANDARD_PARAMETER_BYTES = 4096
MAX_ADVANCED_PARAMETER_BYTES = 8192

_PARAMETER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-/]+$")
_RESERVED_PARAMETER_PREFIXES = ("aws", "ssm")


@dataclass(frozen=True)
class PersistedParameter:
    """A durable parameter created in this pass, with its resolvable identity."""

    name: str
    arn: str
    tier: str = "Standard"
    reference_name: Optional[str] = None

    @property
    def reference(self) -> str:
        """Value handed to the runtime; a reference to the created resource when available."""
        return self.reference_name or self.name


@dataclass(frozen=True)
class ParameterReference:
    parameter: PersistedParameter


RuntimeValue = Union[str, ParameterReference]


@dataclass(frozen=True)
class RuntimeConfig:
    """Ordered environment mapping handed verbatim to each compute target."""

    entries: Tuple[Tuple[str, RuntimeValue], ...] = ()

    def _with(self, name: str, value: RuntimeValue) -> "RuntimeConfig":
        key = str(name or "").strip()
        if not key:
            raise ConfigurationError("Runtime variable name must not be empty")
        replaced = False
        entries: list[Tuple[str, RuntimeValue]] = []
        for existing_key, existing_value in self.entries:
            if existing_key == key:
                entries.append((key, value))
                replaced = True
            else:
                entries.append((existing_key, existing_value))
        if not replaced:
            entries.append((key, value))
        return RuntimeConfig(tuple(entries))

    def with_literal(self, name: str, value: str) -> "RuntimeConfig":
        return self._with(name, str(value))

    def with_reference(
        self,
        name: str,
        parameter: PersistedParameter,
        *,
        persisted: Iterable[PersistedParameter],
    ) -> "RuntimeConfig":
        """Add a reference; ``parameter`` must already be among ``persisted``."""
        if parameter not in tuple(persisted):
            raise DependencyOrderingError(f"{name} references parameter {parameter.name} before it was persisted")
        return self._with(name, ParameterReference(parameter))

    def without(self, name: str) -> "RuntimeConfig":
        return RuntimeConfig(tuple(entry for entry in self.entries if entry[0] != name))

    def names(self) -> list[str]:
        return [key for key, _ in self.entries]

    def get(self, name: str) -> Optional[RuntimeValue]:
        for key, value in self.entries:
            if key == name:
                return value
        return None

    def references(self) -> list[PersistedParameter]:
        return [value.parameter for _, value in self.entries if isinstance(value, ParameterReference)]

    def to_environment(self) -> Dict[str, str]:
        environment: Dict[str, str] = {}
        for key, value in self.entries:
            environment[key] = value.parameter.reference if isinstance(value, ParameterReference) else value
        return environment


@dataclass(frozen=True)
class ConfigResolution:
    runtime_config: RuntimeConfig
    parameter: Optional[PersistedParameter] = None


def normalize_parameter_name(path: str) -> str:
    """Return a fully-qualified SSM parameter name for ``path``."""
    name = str(path or "").strip()
    if not name:
        raise ConfigurationError("ssmParameterPath must not be empty", key="ssmParameterPath")
    if not name.startswith("/"):
        name = f"/{name}"
    name = name.rstrip("/")
    if not _PARAMETER_NAME_PATTERN.match(name) or "//" in name:
        raise ConfigurationError(f"Invalid SSM parameter name: {name}", key="ssmParameterPath")
    first_segment = name.lstrip("/").split("/", 1)[0].lower()
    if first_segment.startswith(_RESERVED_PARAMETER_PREFIXES):
        raise ConfigurationError(f"SSM parameter name uses a reserved prefix: {name}", key="ssmParameterPath")
    return name


def read_custom_metrics_file(path: str) -> str:
    """Read the custom-metrics definition; the handle is closed whether or not reading succeeds."""
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationError(f"Custom metrics file not found: {file_path}", key="customMetricsFile")

    with file_path.open("rb") as handle:
        payload = handle.read()

    if not payload.strip():
        raise ConfigurationError(f"Custom metrics file is empty: {file_path}", key="customMetricsFile")
    if len(payload) > MAX_ADVANCED_PARAMETER_BYTES:
        raise ConfigurationError(
            f"Custom metrics file exceeds {MAX_ADVANCED_PARAMETER_BYTES} bytes: {file_path}",
            key="customMetricsFile",
        )
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"Custom metrics file is not UTF-8: {file_path}", key="customMetricsFile") from exc


def parameter_tier(payload: str) -> ssm.ParameterTier:
    if len(payload.encode("utf-8")) > MAX_STANDARD_PARAMETER_BYTES:
        return ssm.ParameterTier.ADVANCED
    return ssm.ParameterTier.STANDARD


def persist_custom_metrics(scope: Construct, *, file_path: str, parameter_path: str) -> PersistedParameter:
    """Persist the custom-metrics file into a single SSM string parameter."""
    name = normalize_parameter_name(parameter_path)
    payload = read_custom_metrics_file(file_path)
    tier = parameter_tier(payload)

    parameter = ssm.StringParameter(
        scope,
        "CustomMetricsParameter",
        parameter_name=name,
        string_value=payload,
        tier=tier,
        description="Database collector custom metrics definition (TOML)",
    )
    return PersistedParameter(
        name=name,
        arn=parameter.parameter_arn,
        tier="Advanced" if tier == ssm.ParameterTier.ADVANCED else "Standard",
        reference_name=parameter.parameter_name,
    )


def cron_schedule(interval_minutes: int) -> str:
    """Schedule expression read by the collector process in CRON mode."""
    return f"@every {interval_minutes}m"


def resolve_runtime_config(scope: Construct, settings: "CollectorSettings") -> ConfigResolution:
    """Persist the custom-metrics file (when configured) and build the runtime environment."""
    persisted: list[PersistedParameter] = []
    if settings.custom_metrics_file:
        persisted.append(
            persist_custom_metrics(
                scope,
                file_path=settings.custom_metrics_file,
                parameter_path=settings.ssm_parameter_path,
            )
        )

    runtime = (
        RuntimeConfig()
        .with_literal("ENVIRONMENT", settings.env_name)
        .with_literal("RUN_MODE", settings.variant.run_mode.value)
        .with_literal("EXPORTER_TYPE", settings.exporter_type.value)
        .with_literal("LOG_LEVEL", settings.log_level)
        .with_literal("SECRET_OPT_IN_TAG", settings.secret_opt_in_tag)
    )
    if settings.variant.run_mode is RunMode.CRON:
        runtime = runtime.with_literal("CRON_SCHEDULE", cron_schedule(settings.schedule_interval_minutes))
    if settings.prometheus_url:
        runtime = runtime.with_literal("PROMETHEUS_REMOTE_WRITE_URL", settings.prometheus_url)

    parameter = persisted[0] if persisted else None
    if parameter is not None:
        runtime = runtime.with_reference("CUSTOM_METRICS_FILE", parameter, persisted=persisted)

    return ConfigResolution(runtime_config=runtime, parameter=parameter)
