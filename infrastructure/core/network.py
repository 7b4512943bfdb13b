"""Network attachment: resolve VPC placement and bind it to compute targets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from aws_cdk import Stack, aws_ec2 as ec2
from constructs import Construct

from infrastructure.core.errors import ConfigurationError
from infrastructure.core.variant import DeploymentVariant

_VPC_ID_PATTERN = re.compile(r"^vpc-[0-9a-zA-Z]+$")
_SUBNET_ID_PATTERN = re.compile(r"^subnet-[0-9a-zA-Z]+$")
_SECURITY_GROUP_ID_PATTERN = re.compile(r"^sg-[0-9a-zA-Z]+$")


@dataclass(frozen=True)
class NetworkPlacement:
    """Fully specified placement: a VPC, at least one subnet, optional security groups."""

    vpc_id: str
    subnet_ids: Tuple[str, ...]
    security_group_ids: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.vpc_id:
            raise ConfigurationError("Network placement requires a VPC id", key="vpcId")
        if not self.subnet_ids:
            raise ConfigurationError("Network placement requires at least one subnet id", key="subnetIds")


def _validated(identifiers: Sequence[str], pattern: re.Pattern, *, key: str) -> Tuple[str, ...]:
    malformed = [value for value in identifiers if not pattern.match(value)]
    if malformed:
        raise ConfigurationError(f"Malformed {key}: {', '.join(malformed)}", key=key)
    return tuple(identifiers)


def resolve_network_placement(
    variant: DeploymentVariant,
    *,
    vpc_id: Optional[str],
    subnet_ids: Optional[Sequence[str]],
    security_group_ids: Optional[Sequence[str]] = None,
) -> Optional[NetworkPlacement]:
    """Validate raw identifiers; ``None`` means the variant runs without a VPC."""
    if not variant.network_attached:
        return None

    if not vpc_id:
        raise ConfigurationError("Network attachment requested but vpcId is missing", key="vpcId")
    _validated([vpc_id], _VPC_ID_PATTERN, key="vpcId")

    if not subnet_ids:
        raise ConfigurationError("Network attachment requested but subnetIds is empty", key="subnetIds")
    subnets = _validated(subnet_ids, _SUBNET_ID_PATTERN, key="subnetIds")

    security_groups: Tuple[str, ...] = ()
    if security_group_ids is not None:
        if not security_group_ids:
            raise ConfigurationError("securityGroupIds was supplied but is empty", key="securityGroupIds")
        security_groups = _validated(security_group_ids, _SECURITY_GROUP_ID_PATTERN, key="securityGroupIds")

    return NetworkPlacement(vpc_id=vpc_id, subnet_ids=subnets, security_group_ids=security_groups)


@dataclass(frozen=True)
class NetworkBinding:
    """Imported handles for a resolved placement."""

    placement: NetworkPlacement
    vpc: ec2.IVpc
    subnets: Tuple[ec2.ISubnet, ...]
    security_groups: Tuple[ec2.ISecurityGroup, ...]

    def subnet_selection(self) -> ec2.SubnetSelection:
        return ec2.SubnetSelection(subnets=list(self.subnets))


def bind_network_placement(scope: Construct, placement: Optional[NetworkPlacement]) -> Optional[NetworkBinding]:
    if placement is None:
        return None

    vpc = ec2.Vpc.from_vpc_attributes(
        scope,
        "CollectorVpc",
        vpc_id=placement.vpc_id,
        availability_zones=Stack.of(scope).availability_zones,
    )
    subnets = tuple(
        ec2.Subnet.from_subnet_id(scope, f"CollectorSubnet{index}", subnet_id)
        for index, subnet_id in enumerate(placement.subnet_ids)
    )
    security_groups = tuple(
        ec2.SecurityGroup.from_security_group_id(scope, f"CollectorSecurityGroup{index}", group_id, mutable=False)
        for index, group_id in enumerate(placement.security_group_ids)
    )
    return NetworkBinding(placement=placement, vpc=vpc, subnets=subnets, security_groups=security_groups)


def function_network_options(binding: Optional[NetworkBinding]) -> Dict[str, Any]:
    """Keyword arguments attaching a Lambda function to ``binding``; empty without placement."""
    if binding is None:
        return {}
    options: Dict[str, Any] = {"vpc": binding.vpc, "vpc_subnets": binding.subnet_selection()}
    if binding.security_groups:
        options["security_groups"] = list(binding.security_groups)
    return options
