import itertools

import pytest

from infrastructure.core.errors import ConfigurationError, DependencyOrderingError
from infrastructure.core.iam import build_access_scope
from infrastructure.core.iam.access_policy import (
    ECS_TASKS_PRINCIPAL,
    LAMBDA_PRINCIPAL,
    NETWORK_INTERFACE_ACTIONS,
    OBSERVABILITY_MANAGED_POLICY,
    REMOTE_WRITE_MANAGED_POLICY,
)
from infrastructure.core.runtime_config import PersistedParameter
from infrastructure.core.variant import BuildSource, ComputeKind, DeploymentVariant

TAG = "database-collector:enabled"
PARAMETER = PersistedParameter(
    name="/database-collector/custom-metrics",
    arn="arn:aws:ssm:us-east-1:111122223333:parameter/database-collector/custom-metrics",
)


def _all_variants():
    for kind, source, network, custom, events in itertools.product(
        ComputeKind, BuildSource, (False, True), (False, True), (False, True)
    ):
        if kind is ComputeKind.FARGATE and not network:
            continue
        yield DeploymentVariant(kind, source, network, custom, events)


def _scope_for(variant: DeploymentVariant):
    return build_access_scope(
        variant,
        opt_in_tag=TAG,
        parameter=PARAMETER if variant.custom_metrics_file else None,
    )


@pytest.mark.parametrize("variant", list(_all_variants()), ids=lambda v: "-".join(str(x) for x in v.describe().values()))
def test_network_interface_actions_follow_network_attachment(variant: DeploymentVariant) -> None:
    actions = _scope_for(variant).actions()

    for action in NETWORK_INTERFACE_ACTIONS:
        assert (action in actions) is variant.network_attached


@pytest.mark.parametrize("variant", list(_all_variants()), ids=lambda v: "-".join(str(x) for x in v.describe().values()))
def test_secret_access_shape_is_invariant(variant: DeploymentVariant) -> None:
    scope = _scope_for(variant)

    read = scope.statements_for("secretsmanager:GetSecretValue")
    assert read and all(statement.conditioned for statement in read)
    assert read[0].conditions == {"StringEquals": {f"aws:ResourceTag/{TAG}": "true"}}

    listing = scope.statements_for("secretsmanager:ListSecrets")
    assert listing and not any(statement.conditioned for statement in listing)
    assert scope.statements_for("secretsmanager:DescribeSecret")


def test_parameter_read_targets_exactly_the_persisted_parameter() -> None:
    variant = DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL, custom_metrics_file=True)

    statements = _scope_for(variant).statements_for("ssm:GetParameter")

    assert len(statements) == 1
    assert statements[0].resources == (PARAMETER.arn,)
    assert "*" not in statements[0].resources


def test_no_parameter_read_without_custom_file() -> None:
    scope = _scope_for(DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL))

    assert scope.statements_for("ssm:GetParameter") == []
    assert scope.policy_names() == ["SecretsDiscovery", "SecretsRead"]


def test_custom_file_without_persisted_parameter_is_an_ordering_error() -> None:
    variant = DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL, custom_metrics_file=True)

    with pytest.raises(DependencyOrderingError):
        build_access_scope(variant, opt_in_tag=TAG)


def test_stray_parameter_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build_access_scope(DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL), opt_in_tag=TAG, parameter=PARAMETER)


def test_managed_policies_cover_metric_exporters() -> None:
    scope = _scope_for(DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL))

    assert scope.managed_policies == (OBSERVABILITY_MANAGED_POLICY, REMOTE_WRITE_MANAGED_POLICY)


@pytest.mark.parametrize(
    "variant, principals",
    [
        (DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL), (LAMBDA_PRINCIPAL,)),
        (DeploymentVariant(ComputeKind.FARGATE, BuildSource.LOCAL, network_attached=True), (ECS_TASKS_PRINCIPAL,)),
        (
            DeploymentVariant(ComputeKind.FARGATE, BuildSource.LOCAL, network_attached=True, events_trigger=True),
            (ECS_TASKS_PRINCIPAL, LAMBDA_PRINCIPAL),
        ),
    ],
)
def test_principals_match_compute_targets(variant: DeploymentVariant, principals: tuple) -> None:
    assert _scope_for(variant).principals == principals


def test_blank_opt_in_tag_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_access_scope(DeploymentVariant(ComputeKind.LAMBDA, BuildSource.LOCAL), opt_in_tag=" ")
