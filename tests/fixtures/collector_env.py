"""Fixtures for synthesizing the database collector stack under test."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest
from aws_cdk import App
from aws_cdk.assertions import Template

CUSTOM_METRICS_TOML = """\
[[metric]]
context = "sessions"
labels = ["status"]
metricsdesc = { value = "Gauge metric with count of sessions by status." }
request = "SELECT status, count(*) AS value FROM v$session GROUP BY status"
"""


@dataclass
class SynthResult:
    stack: Any
    template: Template
    go_calls: list[dict[str, Any]]


@pytest.fixture
def base_config() -> Dict[str, Any]:
    """Minimal environment config; variant toggles come from context."""
    return {
        "region": "us-east-1",
        "log_retention_days": 7,
        "collector_memory": 512,
        "collector_timeout": 120,
    }


@pytest.fixture
def custom_metrics_file(tmp_path: Path) -> str:
    path = tmp_path / "custom-metrics.toml"
    path.write_text(CUSTOM_METRICS_TOML, encoding="utf-8")
    return str(path)


@pytest.fixture
def prebuilt_artifact(tmp_path: Path) -> Callable[[str], str]:
    """Create a directory standing in for a pre-built Lambda artifact."""

    def _create(name: str) -> str:
        artifact = tmp_path / name
        artifact.mkdir(parents=True, exist_ok=True)
        (artifact / "bootstrap").write_bytes(b"#!/bin/sh\n")
        return str(artifact)

    return _create


@pytest.fixture
def collector_source(tmp_path: Path) -> str:
    """Create a collector source tree containing build/Dockerfile."""
    source = tmp_path / "collector"
    (source / "build").mkdir(parents=True)
    (source / "build" / "Dockerfile").write_text("FROM public.ecr.aws/docker/library/alpine:3.20\n")
    return str(source)


@pytest.fixture
def synth_collector(fake_go_function, base_config) -> Callable[..., SynthResult]:
    """Build the collector stack with the given context and return its template."""
    from infrastructure.core import compute

    def _synth(
        context: Optional[Dict[str, Any]] = None,
        *,
        config: Optional[Dict[str, Any]] = None,
        environment: str = "dev",
        stack_id: str = "CollectorUnderTest",
    ) -> SynthResult:
        from infrastructure.stacks.database_collector_stack import DatabaseCollectorStack

        go_calls = fake_go_function(compute)
        app = App(context=context or {})
        stack = DatabaseCollectorStack(
            app,
            stack_id,
            environment=environment,
            config={**base_config, **(config or {})},
        )
        return SynthResult(stack=stack, template=Template.from_stack(stack), go_calls=go_calls)

    return _synth
