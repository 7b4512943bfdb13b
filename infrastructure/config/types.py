"""Typed configuration contracts for environment-specific settings."""

from __future__ import annotations

from typing import Dict, List, NotRequired, Required, TypedDict


class EnvironmentConfig(TypedDict, total=False):
    """Strongly-typed environment configuration contract."""

    region: Required[str]
    account_id: NotRequired[str | None]

    compute_target: NotRequired[str]
    build_source: NotRequired[str]
    run_mode: NotRequired[str]
    target_os: NotRequired[str]
    target_arch: NotRequired[str]

    network_attached: NotRequired[bool]
    vpc_id: NotRequired[str]
    subnet_ids: NotRequired[str | List[str]]
    security_group_ids: NotRequired[str | List[str]]

    exporter_type: NotRequired[str]
    prometheus_url: NotRequired[str]
    log_level: NotRequired[str]
    secret_opt_in_tag: NotRequired[str]

    custom_metrics_file: NotRequired[str]
    ssm_parameter_path: NotRequired[str]

    collector_source_path: NotRequired[str]
    collector_entry: NotRequired[str]
    collector_dockerfile: NotRequired[str]
    collector_image_uri: NotRequired[str]
    collector_artifact_path: NotRequired[str]
    collector_memory: NotRequired[int]
    collector_timeout: NotRequired[int]

    enable_events_collector: NotRequired[bool]
    events_collector_entry: NotRequired[str]
    events_collector_artifact_path: NotRequired[str]
    events_collector_memory: NotRequired[int]
    events_collector_timeout: NotRequired[int]
    events_sources: NotRequired[List[str]]

    schedule_interval_minutes: NotRequired[int]

    fargate_cpu: NotRequired[int]
    fargate_memory: NotRequired[int]
    fargate_desired_count: NotRequired[int]

    log_retention_days: NotRequired[int]

    tags: NotRequired[Dict[str, str]]
