#!/usr/bin/env python3
"""Validate a deployed database collector against its environment configuration.

Checks
------
1. The collector access role exists and carries the secret discovery/read policies.
2. When a custom metrics file is configured, the SSM parameter exists and matches it.
3. Scheduled variants have an ENABLED rule with the configured rate expression.
4. When the events collector is enabled, its event rule exists.
5. Lambda collectors run in the configured subnets; Fargate services are ACTIVE.

A JSON summary is printed to stdout. The exit code is 1 when any check fails and 2
when validation cannot run (bad configuration or an AWS API error).
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.config.environments import get_environment_config
from infrastructure.config.settings import CollectorSettings, resolve_collector_settings
from infrastructure.core.compute import COLLECTOR_NAME, EVENTS_COLLECTOR_NAME
from infrastructure.core.errors import ConfigurationError
from infrastructure.core.logging_utils import get_logger
from infrastructure.core.runtime_config import normalize_parameter_name, read_custom_metrics_file
from infrastructure.core.variant import ComputeKind

REQUIRED_ROLE_POLICIES = ("SecretsDiscovery", "SecretsRead")


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ""


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "Unknown"))


def check_role(iam_client, settings: CollectorSettings) -> CheckResult:
    role_name = f"{settings.env_name}-database-collector-role"
    try:
        iam_client.get_role(RoleName=role_name)
        policies = iam_client.list_role_policies(RoleName=role_name).get("PolicyNames", [])
    except ClientError as exc:
        return CheckResult("role", False, f"{role_name}: {_error_code(exc)}")

    missing = [name for name in REQUIRED_ROLE_POLICIES if name not in policies]
    if settings.variant.network_attached and "NetworkInterfaces" not in policies:
        missing.append("NetworkInterfaces")
    if settings.variant.custom_metrics_file and "CustomMetricsParameter" not in policies:
        missing.append("CustomMetricsParameter")
    if missing:
        return CheckResult("role", False, f"{role_name} missing policies: {', '.join(missing)}")
    return CheckResult("role", True, role_name)


def check_parameter(ssm_client, settings: CollectorSettings) -> Optional[CheckResult]:
    if not settings.custom_metrics_file:
        return None
    name = normalize_parameter_name(settings.ssm_parameter_path)
    try:
        deployed = ssm_client.get_parameter(Name=name)["Parameter"]["Value"]
    except ClientError as exc:
        return CheckResult("custom_metrics_parameter", False, f"{name}: {_error_code(exc)}")

    local = read_custom_metrics_file(settings.custom_metrics_file)
    if deployed != local:
        return CheckResult("custom_metrics_parameter", False, f"{name} differs from {settings.custom_metrics_file}")
    return CheckResult("custom_metrics_parameter", True, name)


def _describe_rule(events_client, rule_name: str) -> Optional[Dict[str, Any]]:
    try:
        return events_client.describe_rule(Name=rule_name)
    except ClientError as exc:
        if _error_code(exc) == "ResourceNotFoundException":
            return None
        raise


def check_schedule(events_client, settings: CollectorSettings) -> Optional[CheckResult]:
    if not settings.variant.scheduled:
        return None
    rule_name = f"{settings.env_name}-{COLLECTOR_NAME}-schedule"
    rule = _describe_rule(events_client, rule_name)
    if rule is None:
        return CheckResult("schedule", False, f"{rule_name} not found")

    minutes = settings.schedule_interval_minutes
    expected = f"rate({minutes} {'minute' if minutes == 1 else 'minutes'})"
    if rule.get("State") != "ENABLED":
        return CheckResult("schedule", False, f"{rule_name} is {rule.get('State')}")
    if rule.get("ScheduleExpression") != expected:
        return CheckResult("schedule", False, f"{rule_name} expression {rule.get('ScheduleExpression')} != {expected}")
    return CheckResult("schedule", True, f"{rule_name} {expected}")


def check_events_rule(events_client, settings: CollectorSettings) -> Optional[CheckResult]:
    if not settings.variant.events_trigger:
        return None
    rule_name = f"{settings.env_name}-{EVENTS_COLLECTOR_NAME}-events"
    rule = _describe_rule(events_client, rule_name)
    if rule is None:
        return CheckResult("events_rule", False, f"{rule_name} not found")
    pattern = json.loads(rule.get("EventPattern") or "{}")
    sources = sorted(pattern.get("source", []))
    if sources != sorted(settings.events_sources):
        return CheckResult("events_rule", False, f"{rule_name} sources {sources}")
    return CheckResult("events_rule", True, rule_name)


def check_function(lambda_client, settings: CollectorSettings) -> Optional[CheckResult]:
    if settings.variant.compute_kind is not ComputeKind.LAMBDA:
        return None
    function_name = f"{settings.env_name}-{COLLECTOR_NAME}"
    try:
        configuration = lambda_client.get_function_configuration(FunctionName=function_name)
    except ClientError as exc:
        return CheckResult("compute_target", False, f"{function_name}: {_error_code(exc)}")

    if settings.variant.network_attached:
        deployed_subnets = sorted(configuration.get("VpcConfig", {}).get("SubnetIds", []))
        if deployed_subnets != sorted(settings.subnet_ids or ()):
            return CheckResult("compute_target", False, f"{function_name} subnets {deployed_subnets}")
    return CheckResult("compute_target", True, function_name)


def check_service(ecs_client, settings: CollectorSettings) -> Optional[CheckResult]:
    if settings.variant.compute_kind is not ComputeKind.FARGATE:
        return None
    name = f"{settings.env_name}-{COLLECTOR_NAME}"
    services = ecs_client.describe_services(cluster=name, services=[name]).get("services", [])
    if not services:
        return CheckResult("compute_target", False, f"{name} service not found")
    status = services[0].get("status")
    if status != "ACTIVE":
        return CheckResult("compute_target", False, f"{name} is {status}")
    return CheckResult("compute_target", True, name)


def run_checks(session, settings: CollectorSettings) -> List[CheckResult]:
    candidates = [
        check_role(session.client("iam"), settings),
        check_parameter(session.client("ssm"), settings),
        check_schedule(session.client("events"), settings),
        check_events_rule(session.client("events"), settings),
        check_function(session.client("lambda"), settings),
        check_service(session.client("ecs"), settings),
    ]
    return [result for result in candidates if result is not None]


def parse_context(pairs: Sequence[str]) -> Dict[str, str]:
    """Parse repeated ``key=value`` arguments into a context mapping."""
    context: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Context must be key=value, got '{pair}'")
        context[key.strip()] = value.strip()
    return context


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the database collector post-deploy")
    parser.add_argument("--environment", "-e", default="dev", help="Target environment (dev|staging|prod)")
    parser.add_argument(
        "--context", "-c", action="append", default=[], help="CDK context override used at deploy time (key=value)"
    )
    parser.add_argument("--region", help="AWS region override")
    args = parser.parse_args(argv)

    logger = get_logger("validate_collector", args.environment)
    try:
        config = get_environment_config(args.environment)
        context = parse_context(args.context)
        settings = resolve_collector_settings(args.environment, config, context.get)
        session = boto3.Session(region_name=args.region or config.get("region"))
        results = run_checks(session, settings)
    except (ConfigurationError, BotoCoreError, ClientError) as exc:
        logger.error("Validation aborted", extra={"details": {"error": str(exc)}})
        print(json.dumps({"environment": args.environment, "passed": False, "error": str(exc)}, indent=2))
        return 2

    failed = [result for result in results if not result.ok]
    for result in results:
        level = "info" if result.ok else "error"
        getattr(logger, level)("Check %s", result.name, extra={"details": asdict(result)})

    summary = {
        "environment": args.environment,
        "variant": settings.variant.describe(),
        "passed": not failed,
        "checks": [asdict(result) for result in results],
    }
    print(json.dumps(summary, indent=2))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
