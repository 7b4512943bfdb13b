"""Access policy builder for the collector identity.

The scope is computed from the deployment variant alone (plus the persisted
parameter, when one exists), so it can be inspected without synthesizing a
stack. ``CollectorAccessRoleConstruct`` turns it into an IAM role.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from infrastructure.core.errors import ConfigurationError, DependencyOrderingError
from infrastructure.core.iam import utils as iam_utils
from infrastructure.core.runtime_config import PersistedParameter
from infrastructure.core.variant import ComputeKind, DeploymentVariant

SECRET_DISCOVERY_ACTIONS = ("secretsmanager:DescribeSecret", "secretsmanager:ListSecrets")
SECRET_VALUE_ACTIONS = ("secretsmanager:GetSecretValue",)
NETWORK_INTERFACE_ACTIONS = (
    "ec2:CreateNetworkInterface",
    "ec2:DescribeNetworkInterfaces",
    "ec2:DeleteNetworkInterface",
)
PARAMETER_READ_ACTIONS = ("ssm:GetParameter",)

OBSERVABILITY_MANAGED_POLICY = "CloudWatchFullAccessV2"
REMOTE_WRITE_MANAGED_POLICY = "AmazonPrometheusRemoteWriteAccess"

LAMBDA_PRINCIPAL = "lambda.amazonaws.com"
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"


@dataclass(frozen=True)
class AccessStatement:
    """One (actions, resources, condition) grant, grouped under a policy name."""

    policy_name: str
    actions: Tuple[str, ...]
    resources: Tuple[str, ...] = ("*",)
    conditions: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @property
    def conditioned(self) -> bool:
        return bool(self.conditions)


@dataclass(frozen=True)
class AccessScope:
    """Immutable set of grants plus the principals allowed to assume them."""

    statements: Tuple[AccessStatement, ...]
    managed_policies: Tuple[str, ...]
    principals: Tuple[str, ...]

    def actions(self) -> list[str]:
        return iam_utils.dedupe(action for statement in self.statements for action in statement.actions)

    def statements_for(self, action: str) -> list[AccessStatement]:
        return [statement for statement in self.statements if action in statement.actions]

    def policy_names(self) -> list[str]:
        return iam_utils.dedupe(statement.policy_name for statement in self.statements)


def _principals(variant: DeploymentVariant) -> Tuple[str, ...]:
    principals: list[str] = []
    if variant.compute_kind is ComputeKind.FARGATE:
        principals.append(ECS_TASKS_PRINCIPAL)
    if variant.compute_kind is ComputeKind.LAMBDA or variant.events_trigger:
        principals.append(LAMBDA_PRINCIPAL)
    return tuple(principals)


def build_access_scope(
    variant: DeploymentVariant,
    *,
    opt_in_tag: str,
    parameter: Optional[PersistedParameter] = None,
) -> AccessScope:
    """Derive the minimal access scope for ``variant``."""
    if variant.custom_metrics_file and parameter is None:
        raise DependencyOrderingError("Custom metrics parameter must be persisted before the access scope is built")
    if parameter is not None and not variant.custom_metrics_file:
        raise ConfigurationError("Persisted parameter supplied for a variant without a custom metrics file")

    statements: list[AccessStatement] = [
        # Discovery stays unconditioned: the collector lists secrets to find opted-in ones
        AccessStatement("SecretsDiscovery", SECRET_DISCOVERY_ACTIONS),
        AccessStatement(
            "SecretsRead",
            SECRET_VALUE_ACTIONS,
            conditions=iam_utils.resource_tag_condition(opt_in_tag),
        ),
    ]

    if variant.network_attached:
        statements.append(AccessStatement("NetworkInterfaces", NETWORK_INTERFACE_ACTIONS))

    if parameter is not None:
        statements.append(AccessStatement("CustomMetricsParameter", PARAMETER_READ_ACTIONS, (parameter.arn,)))

    return AccessScope(
        statements=tuple(statements),
        managed_policies=(OBSERVABILITY_MANAGED_POLICY, REMOTE_WRITE_MANAGED_POLICY),
        principals=_principals(variant),
    )
