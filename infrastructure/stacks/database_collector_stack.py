"""Database collector stack.

Composes the collector deployment in one linear pass:

1. resolve settings, persist the custom-metrics parameter, shape the runtime environment
2. build the access scope and materialize it as the shared role
3. resolve and bind network placement
4. create the compute target(s)
5. bind the schedule and event triggers

Each step consumes the previous step's output, so the order is fixed and a
failure at any step aborts the whole stack.
"""

from typing import Any, Dict, List, Optional

from aws_cdk import CfnOutput, Stack, aws_events as events, aws_iam as iam
from constructs import Construct

from infrastructure.config.settings import CollectorSettings, resolve_collector_settings
from infrastructure.config.types import EnvironmentConfig
from infrastructure.core.composition import CompositionPass, CompositionStage
from infrastructure.core.compute import (
    ComputeTarget,
    ComputeTargetFactory,
    collector_entry_point,
    events_entry_point,
)
from infrastructure.core.iam import AccessScope, CollectorAccessRoleConstruct, build_access_scope
from infrastructure.core.logging_utils import get_logger
from infrastructure.core.network import NetworkBinding, bind_network_placement, resolve_network_placement
from infrastructure.core.runtime_config import ConfigResolution, resolve_runtime_config
from infrastructure.core.triggers import bind_trigger, plan_triggers


class DatabaseCollectorStack(Stack):
    """Scheduled database metrics collector with least-privilege access."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        environment: str,
        config: EnvironmentConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = environment
        self.config = config
        self.composition = CompositionPass()
        self._logger = get_logger(__name__, environment)

        self.settings: CollectorSettings
        self.config_resolution = self._resolve_config()
        self.access_scope, self.access_role = self._scope_access()
        self.network_binding = self._resolve_network()
        self.compute_targets = self._create_compute_targets()
        self.trigger_rules = self._bind_triggers()

        self._create_outputs()

    def _log(self, message: str, **details: Any) -> None:
        self._logger.info(message, extra={"stage": self.composition.stage.name, "details": details})

    def _resolve_config(self) -> ConfigResolution:
        """Resolve settings and the runtime environment; persist custom metrics when supplied."""
        self.settings = resolve_collector_settings(self.env_name, self.config, self.node.try_get_context)
        self._log("Deployment variant resolved", **self.settings.variant.describe())

        resolution = resolve_runtime_config(self, self.settings)
        self.composition.advance(CompositionStage.CONFIG_RESOLVED)
        if resolution.parameter is not None:
            self._log(
                "Custom metrics persisted",
                parameter=resolution.parameter.name,
                tier=resolution.parameter.tier,
            )
        self._log("Runtime config resolved", variables=resolution.runtime_config.names())
        return resolution

    def _scope_access(self) -> tuple[AccessScope, iam.Role]:
        self.composition.require(CompositionStage.CONFIG_RESOLVED, consumer="access policy builder")
        access_scope = build_access_scope(
            self.settings.variant,
            opt_in_tag=self.settings.secret_opt_in_tag,
            parameter=self.config_resolution.parameter,
        )
        role_construct = CollectorAccessRoleConstruct(
            self,
            "CollectorAccessRole",
            env_name=self.env_name,
            access_scope=access_scope,
        )
        self.composition.advance(CompositionStage.ACCESS_SCOPED)
        self._log(
            "Access scope materialized",
            policies=access_scope.policy_names(),
            principals=list(access_scope.principals),
        )
        return access_scope, role_construct.role

    def _resolve_network(self) -> Optional[NetworkBinding]:
        self.composition.require(CompositionStage.ACCESS_SCOPED, consumer="network attacher")
        settings = self.settings
        placement = resolve_network_placement(
            settings.variant,
            vpc_id=settings.vpc_id,
            subnet_ids=settings.subnet_ids,
            security_group_ids=settings.security_group_ids,
        )
        binding = bind_network_placement(self, placement)
        self.composition.advance(CompositionStage.NETWORK_RESOLVED)
        if placement is None:
            self._log("No network placement")
        else:
            self._log(
                "Network placement resolved",
                vpc_id=placement.vpc_id,
                subnet_ids=list(placement.subnet_ids),
                security_group_ids=list(placement.security_group_ids),
            )
        return binding

    def _create_compute_targets(self) -> Dict[str, ComputeTarget]:
        self.composition.require(CompositionStage.NETWORK_RESOLVED, consumer="compute target factory")
        factory = ComputeTargetFactory(
            self,
            self.settings,
            role=self.access_role,
            runtime_config=self.config_resolution.runtime_config,
            network=self.network_binding,
        )

        entry_points = [collector_entry_point(self.settings)]
        if self.settings.variant.events_trigger:
            entry_points.append(events_entry_point(self.settings))

        compute_targets: Dict[str, ComputeTarget] = {}
        for entry_point in entry_points:
            compute_targets[entry_point.name] = factory.create(entry_point)
            self._log(
                "Compute target created",
                entry_point=entry_point.name,
                kind=entry_point.kind.value,
                memory_mib=entry_point.sizing.memory_mib,
            )
        self.composition.advance(CompositionStage.COMPUTE_TARGET_CREATED)
        return compute_targets

    def _bind_triggers(self) -> List[events.Rule]:
        self.composition.require(CompositionStage.COMPUTE_TARGET_CREATED, consumer="trigger binder")
        rules: List[events.Rule] = []
        for trigger in plan_triggers(self.settings):
            rules.append(
                bind_trigger(
                    self,
                    env_name=self.env_name,
                    trigger=trigger,
                    target=self.compute_targets[trigger.entry_point],
                )
            )
            self._log("Trigger bound", entry_point=trigger.entry_point, trigger=type(trigger).__name__)
        self.composition.advance(CompositionStage.TRIGGERS_BOUND)
        return rules

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs."""
        CfnOutput(
            self,
            "CollectorRoleArn",
            value=self.access_role.role_arn,
            description="Database collector access role ARN",
        )

        for name, target in self.compute_targets.items():
            output_id = "".join(part.capitalize() for part in name.split("-"))
            if target.function is not None:
                CfnOutput(
                    self,
                    f"{output_id}FunctionArn",
                    value=target.function.function_arn,
                    description=f"{name} function ARN",
                )
            if target.service is not None:
                CfnOutput(
                    self,
                    f"{output_id}ServiceName",
                    value=target.service.service_name,
                    description=f"{name} ECS service name",
                )

        parameter = self.config_resolution.parameter
        if parameter is not None:
            CfnOutput(
                self,
                "CustomMetricsParameterName",
                value=parameter.reference,
                description="SSM parameter holding the custom metrics definition",
            )
