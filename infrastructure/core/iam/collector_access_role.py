"""Construct materializing the collector access scope as an IAM role."""

from __future__ import annotations

from aws_cdk import aws_iam as iam
from constructs import Construct

from infrastructure.core.iam.access_policy import AccessScope


class CollectorAccessRoleConstruct(Construct):
    """Provision the single role shared by every collector compute target."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        access_scope: AccessScope,
    ) -> None:
        super().__init__(scope, construct_id)
        self._access_scope = access_scope

        principals = [iam.ServicePrincipal(name) for name in access_scope.principals]
        if not principals:
            raise ValueError("Access scope must name at least one principal")
        assumed_by: iam.IPrincipal = principals[0] if len(principals) == 1 else iam.CompositePrincipal(*principals)

        inline_policies: dict[str, iam.PolicyDocument] = {}
        for policy_name in access_scope.policy_names():
            inline_policies[policy_name] = iam.PolicyDocument(
                statements=[
                    iam.PolicyStatement(
                        effect=iam.Effect.ALLOW,
                        actions=list(statement.actions),
                        resources=list(statement.resources),
                        conditions=statement.conditions,
                    )
                    for statement in access_scope.statements
                    if statement.policy_name == policy_name
                ]
            )

        self._role = iam.Role(
            self,
            "Role",
            role_name=f"{env_name}-database-collector-role",
            assumed_by=assumed_by,
            description="Database collector access identity",
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(name) for name in access_scope.managed_policies
            ],
            inline_policies=inline_policies,
        )

    @property
    def role(self) -> iam.Role:
        """Return the created IAM role."""
        return self._role

    @property
    def access_scope(self) -> AccessScope:
        return self._access_scope
